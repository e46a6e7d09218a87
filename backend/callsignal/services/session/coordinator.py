"""
Session Coordinator

Owns the presence directory and the call session table, and routes every
signaling event between exactly the two parties of a call:
- Identity registration / disconnect cleanup
- Session creation (call), transition (answer) and teardown (end-call, disconnect)
- Pure relay of ICE candidates
- Recording requests forwarded to the media relay

State is only touched while holding the coordinator lock; outbound messages
are sent after the lock is released. Media relay calls run as background
tasks so a slow relay never stalls routing of other events.
"""
import asyncio
import itertools
import logging
import time
from typing import Any, Dict, List, Optional, Set, Tuple

from callsignal.config.constants import (
    EVENT_ANSWER,
    EVENT_CALL,
    EVENT_DISCONNECT,
    EVENT_END_CALL,
    EVENT_ICE_CANDIDATE,
    EVENT_REGISTER,
    EVENT_START_RECORDING_REQUEST,
    EVENT_STOP_RECORDING_REQUEST,
    END_REASON_TIMEOUT,
    RELAY_START_RECORDING,
    RELAY_STOP_RECORDING,
    RELAY_TERMINATE_SESSION,
    STATUS_CALLING,
)
from callsignal.schemas import websocket_events as messages
from callsignal.schemas.websocket_events import (
    AnswerEvent,
    CallEvent,
    EndCallEvent,
    IceCandidateEvent,
    RegisterEvent,
    SessionScopedEvent,
    SignalingEventBase,
)
from callsignal.services.connection import SignalingConnection
from callsignal.services.media_relay.null_relay import NullMediaRelay
from callsignal.services.media_relay.protocols import MediaRelayProtocol, RelayResult
from callsignal.services.metrics import (
    active_sessions_gauge,
    events_processed,
    registered_identities_gauge,
    relay_calls,
)
from callsignal.services.presence import PresenceDirectory
from callsignal.services.session.models import CallSession

logger = logging.getLogger(__name__)

Outbound = List[Tuple[SignalingConnection, Dict[str, Any]]]


class SessionCoordinator:
    """
    Routes signaling events and drives the call session state machine.

    calling --answer--> connected; any state --end-call/disconnect/timeout--> deleted.
    """

    def __init__(
        self,
        media_relay: Optional[MediaRelayProtocol] = None,
        calling_timeout_sec: float = 0.0,
        sweep_interval_sec: float = 30.0
    ):
        self.presence = PresenceDirectory()
        self.media_relay = media_relay or NullMediaRelay()
        self.calling_timeout_sec = calling_timeout_sec
        self.sweep_interval_sec = sweep_interval_sec

        # session_id -> CallSession (source of truth)
        self._sessions: Dict[str, CallSession] = {}
        # connection_id -> session_id (cache for O(1) lookup, always derived)
        self._connection_sessions: Dict[str, str] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()
        self._control_tasks: Set[asyncio.Task] = set()

        self._handlers = {
            EVENT_CALL: self.call,
            EVENT_ANSWER: self.answer,
            EVENT_ICE_CANDIDATE: self.ice_candidate,
            EVENT_END_CALL: self.end_call,
            EVENT_START_RECORDING_REQUEST: self.start_recording_request,
            EVENT_STOP_RECORDING_REQUEST: self.stop_recording_request,
        }

    # === Dispatch ===

    async def dispatch(self, connection: SignalingConnection, event: SignalingEventBase) -> Any:
        """Hand a parsed inbound event to its handler."""
        if isinstance(event, RegisterEvent):
            return await self.register(connection, event.role)
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.warning(f"[Coordinator] No handler for event type {event.type}")
            return None
        return await handler(connection, event)

    # === Presence ===

    async def register(self, connection: SignalingConnection, identity: str) -> None:
        async with self._lock:
            previous = self.presence.register(identity, connection)
            registered_identities_gauge.set(len(self.presence))
            if previous is not None:
                self._hand_over_link(previous, connection)

        events_processed.labels(event=EVENT_REGISTER, outcome="routed").inc()
        await connection.send_json(messages.registered(identity))

    async def disconnect(self, connection: SignalingConnection) -> List[str]:
        """
        Drop the connection's presence entry and every session it took part in.

        Returns:
            IDs of the sessions that were removed.
        """
        async with self._lock:
            was_current = self.presence.unregister(connection)
            registered_identities_gauge.set(len(self.presence))

            doomed: Dict[str, CallSession] = {}
            linked = self._linked_session(connection)
            if linked is not None:
                doomed[linked.session_id] = linked

            # A stale connection must not tear down its successor's calls
            if was_current:
                for session in self._sessions.values():
                    if session.involves(connection.identity):
                        doomed[session.session_id] = session

            for session in doomed.values():
                logger.info(
                    f"[Coordinator] Cleaning up session {session.session_id} "
                    f"due to {connection.identity or connection.connection_id} disconnection"
                )
                self._remove_session(session)
            self._connection_sessions.pop(connection.connection_id, None)

        logger.info(f"[Coordinator] User disconnected: {connection.connection_id}")
        events_processed.labels(event=EVENT_DISCONNECT, outcome="routed").inc()

        for session in doomed.values():
            self._spawn_control(RELAY_TERMINATE_SESSION, session)
        return list(doomed.keys())

    # === Negotiation ===

    async def call(self, connection: SignalingConnection, event: CallEvent) -> Optional[CallSession]:
        """
        Open a session from event.from_ to event.to and forward the offer.

        Returns:
            The new session, or None if the target is not present.
        """
        outbound: Outbound = []
        superseded: Optional[CallSession] = None

        async with self._lock:
            target_conn = self.presence.lookup(event.to)
            if target_conn is None:
                logger.info(f"[Coordinator] User {event.to} not found for call from {event.from_}")
                events_processed.labels(event=EVENT_CALL, outcome="dropped").inc()
                return None

            # One connection belongs to at most one session
            superseded = self._linked_session(connection)
            if superseded is not None:
                logger.warning(
                    f"[Coordinator] {event.from_} started a new call while in session "
                    f"{superseded.session_id}; ending the old session"
                )
                self._remove_session(superseded)
                other = superseded.target if superseded.initiator == event.from_ else superseded.initiator
                other_conn = self.presence.lookup(other)
                if other_conn is not None and other_conn is not connection:
                    outbound.append((other_conn, messages.call_ended(event.from_)))

            session = CallSession(
                session_id=self._next_session_id(event.from_, event.to),
                initiator=event.from_,
                target=event.to,
                initiator_connection_id=connection.connection_id,
            )
            self._sessions[session.session_id] = session
            self._connection_sessions[connection.connection_id] = session.session_id

            # Link the callee unless it is already busy in another live session;
            # it can still address this one explicitly via sessionId.
            if self._linked_session(target_conn) is None:
                session.target_connection_id = target_conn.connection_id
                self._connection_sessions[target_conn.connection_id] = session.session_id

            active_sessions_gauge.set(len(self._sessions))
            outbound.append((target_conn, messages.incoming_call(event.from_, event.offer)))
            outbound.append((target_conn, messages.call_session_info(session.session_id)))

        logger.info(f"[Coordinator] Call from {event.from_} to {event.to}, created session {session.session_id}")
        events_processed.labels(event=EVENT_CALL, outcome="routed").inc()

        await self._deliver(outbound)
        if superseded is not None:
            self._spawn_control(RELAY_TERMINATE_SESSION, superseded)
        return session

    async def answer(self, connection: SignalingConnection, event: AnswerEvent) -> bool:
        """Relay the answer; move the sender's calling session to connected."""
        async with self._lock:
            target_conn = self.presence.lookup(event.to)
            if target_conn is None:
                logger.info(f"[Coordinator] User {event.to} not found for answer from {event.from_}")
                events_processed.labels(event=EVENT_ANSWER, outcome="dropped").inc()
                return False

            session = self._resolve_session(connection, event)
            if session is None and not event.session_id:
                session = self._adopt_pending_call(connection, event.to)
            if session is None:
                logger.info(f"[Coordinator] Answer from {event.from_} has no session, relaying only")
            elif session.mark_connected():
                logger.info(f"[Coordinator] Session {session.session_id} connected.")

        logger.info(f"[Coordinator] Answer from {event.from_} to {event.to}")
        events_processed.labels(event=EVENT_ANSWER, outcome="routed").inc()
        await target_conn.send_json(messages.call_answered(event.from_, event.answer))
        return True

    async def ice_candidate(self, connection: SignalingConnection, event: IceCandidateEvent) -> bool:
        async with self._lock:
            target_conn = self.presence.lookup(event.to)

        if target_conn is None:
            logger.debug(f"[Coordinator] User {event.to} not found for ICE candidate from {event.from_}")
            events_processed.labels(event=EVENT_ICE_CANDIDATE, outcome="dropped").inc()
            return False

        logger.debug(f"[Coordinator] ICE candidate from {event.from_} to {event.to}")
        events_processed.labels(event=EVENT_ICE_CANDIDATE, outcome="routed").inc()
        await target_conn.send_json(messages.ice_candidate(event.from_, event.candidate))
        return True

    async def end_call(self, connection: SignalingConnection, event: EndCallEvent) -> Optional[str]:
        """
        Notify the peer and delete the sender's session. Idempotent.

        Returns:
            ID of the deleted session, if one existed.
        """
        async with self._lock:
            target_conn = self.presence.lookup(event.to)
            session = self._resolve_session(connection, event)
            if session is not None:
                self._remove_session(session)

        if target_conn is not None:
            logger.info(f"[Coordinator] End call from {event.from_} to {event.to}")
            await target_conn.send_json(messages.call_ended(event.from_))
        else:
            logger.info(f"[Coordinator] User {event.to} not found for end-call from {event.from_}")

        events_processed.labels(
            event=EVENT_END_CALL,
            outcome="routed" if target_conn is not None else "dropped"
        ).inc()

        if session is None:
            return None
        logger.info(f"[Coordinator] Session {session.session_id} ended and cleaned up.")
        self._spawn_control(RELAY_TERMINATE_SESSION, session)
        return session.session_id

    # === Recording ===

    async def start_recording_request(self, connection: SignalingConnection, event: SessionScopedEvent) -> bool:
        return await self._request_recording(connection, event, RELAY_START_RECORDING)

    async def stop_recording_request(self, connection: SignalingConnection, event: SessionScopedEvent) -> bool:
        return await self._request_recording(connection, event, RELAY_STOP_RECORDING)

    async def _request_recording(
        self,
        connection: SignalingConnection,
        event: SessionScopedEvent,
        command: str
    ) -> bool:
        async with self._lock:
            session = self._resolve_session(connection, event)

        if session is None:
            verb = "start" if command == RELAY_START_RECORDING else "stop"
            logger.warning(f"[Coordinator] No active session found for {event.from_} to {verb} recording.")
            events_processed.labels(event=event.type, outcome="rejected").inc()
            return False

        logger.info(
            f"[Coordinator] Server-side {command} request for session {session.session_id} "
            f"from {event.from_} (for {event.to})"
        )
        events_processed.labels(event=event.type, outcome="routed").inc()
        self._spawn_control(command, session, requester=connection, requested_by=event.from_)
        return True

    async def _complete_recording(
        self,
        command: str,
        session: CallSession,
        result: RelayResult,
        requester: SignalingConnection,
        requested_by: str
    ) -> None:
        outbound: Outbound = []

        async with self._lock:
            if self._sessions.get(session.session_id) is not session:
                logger.info(
                    f"[Coordinator] {command} completed after session {session.session_id} ended; ignoring"
                )
                return

            if result.ok:
                if command == RELAY_START_RECORDING:
                    message = messages.start_recording_signal(requested_by)
                else:
                    message = messages.stop_recording_signal(requested_by, result.artifact)
                seen = set()
                for identity in (session.initiator, session.target):
                    conn = self.presence.lookup(identity)
                    if conn is not None and conn.connection_id not in seen:
                        seen.add(conn.connection_id)
                        outbound.append((conn, message))
            else:
                action = "start" if command == RELAY_START_RECORDING else "stop"
                outbound.append((requester, messages.recording_failed(action, session.session_id, result.error)))

        await self._deliver(outbound)

    # === Housekeeping ===

    async def sweep_stale_sessions(self, max_age_sec: Optional[float] = None) -> int:
        """
        Delete sessions stuck in calling for longer than max_age_sec.

        Returns:
            Number of sessions removed.
        """
        max_age = self.calling_timeout_sec if max_age_sec is None else max_age_sec
        if not max_age or max_age <= 0:
            return 0

        outbound: Outbound = []
        now = time.monotonic()

        async with self._lock:
            stale = [
                s for s in self._sessions.values()
                if s.status == STATUS_CALLING and now - s.created_at >= max_age
            ]
            for session in stale:
                self._remove_session(session)
                initiator_conn = self.presence.lookup(session.initiator)
                target_conn = self.presence.lookup(session.target)
                if initiator_conn is not None:
                    outbound.append((initiator_conn, messages.call_ended(session.target, END_REASON_TIMEOUT)))
                if target_conn is not None:
                    outbound.append((target_conn, messages.call_ended(session.initiator, END_REASON_TIMEOUT)))

        for session in stale:
            logger.info(f"[Sweeper] Session {session.session_id} timed out while calling")
            self._spawn_control(RELAY_TERMINATE_SESSION, session)
        await self._deliver(outbound)
        return len(stale)

    async def run_sweeper(self):
        """Background loop removing stale calling sessions."""
        logger.info(f"[Sweeper] Started (timeout={self.calling_timeout_sec}s, interval={self.sweep_interval_sec}s)")
        while True:
            await asyncio.sleep(self.sweep_interval_sec)
            try:
                removed = await self.sweep_stale_sessions()
                if removed:
                    logger.info(f"[Sweeper] Removed {removed} stale sessions")
            except Exception as e:
                logger.error(f"[Sweeper] Error during sweep: {e}")

    async def drain(self) -> None:
        """Wait for every in-flight media relay call to complete."""
        while self._control_tasks:
            await asyncio.gather(*list(self._control_tasks), return_exceptions=True)

    # === Query Methods ===

    def get_session(self, session_id: str) -> Optional[CallSession]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> List[CallSession]:
        return list(self._sessions.values())

    def session_for_connection(self, connection: SignalingConnection) -> Optional[CallSession]:
        return self._linked_session(connection)

    def active_session_count(self) -> int:
        return len(self._sessions)

    # === Internals ===

    def _next_session_id(self, initiator: str, target: str) -> str:
        return f"{initiator}_{target}_{next(self._sequence)}"

    def _linked_session(self, connection: SignalingConnection) -> Optional[CallSession]:
        session_id = self._connection_sessions.get(connection.connection_id)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def _link(self, connection: SignalingConnection, session: CallSession) -> None:
        if connection.identity == session.initiator:
            session.initiator_connection_id = connection.connection_id
        else:
            session.target_connection_id = connection.connection_id
        self._connection_sessions[connection.connection_id] = session.session_id

    def _hand_over_link(self, previous: SignalingConnection, replacement: SignalingConnection) -> None:
        """Move a replaced connection's session link to the connection now holding its identity."""
        session = self._linked_session(previous)
        if session is None or self._linked_session(replacement) is not None:
            return
        if not session.involves(replacement.identity):
            return
        del self._connection_sessions[previous.connection_id]
        self._link(replacement, session)
        logger.info(
            f"[Coordinator] Session {session.session_id} moved from connection "
            f"{previous.connection_id} to {replacement.connection_id}"
        )

    def _adopt_pending_call(self, connection: SignalingConnection, caller: str) -> Optional[CallSession]:
        """
        Link an unlinked callee to the calling session caller opened towards it.

        Covers a callee that was busy when the call arrived and answers later
        without naming the session.
        """
        if connection.identity is None or self._linked_session(connection) is not None:
            return None
        for session in self._sessions.values():
            if (
                session.status == STATUS_CALLING
                and session.initiator == caller
                and session.target == connection.identity
            ):
                self._link(connection, session)
                logger.info(f"[Coordinator] {connection.identity} picked up pending session {session.session_id}")
                return session
        return None

    def _resolve_session(
        self,
        connection: SignalingConnection,
        event: SessionScopedEvent
    ) -> Optional[CallSession]:
        """Session named by event.session_id, else the one linked to connection."""
        if event.session_id:
            session = self._sessions.get(event.session_id)
            if session is None or not session.involves(connection.identity):
                return None
            return session
        return self._linked_session(connection)

    def _remove_session(self, session: CallSession) -> None:
        self._sessions.pop(session.session_id, None)
        for connection_id in (session.initiator_connection_id, session.target_connection_id):
            if connection_id and self._connection_sessions.get(connection_id) == session.session_id:
                del self._connection_sessions[connection_id]
        active_sessions_gauge.set(len(self._sessions))

    async def _deliver(self, outbound: Outbound) -> None:
        for connection, message in outbound:
            await connection.send_json(message)

    def _spawn_control(
        self,
        command: str,
        session: CallSession,
        requester: Optional[SignalingConnection] = None,
        requested_by: Optional[str] = None
    ) -> asyncio.Task:
        task = asyncio.create_task(self._run_control(command, session, requester, requested_by))
        self._control_tasks.add(task)
        task.add_done_callback(self._control_tasks.discard)
        return task

    async def _run_control(
        self,
        command: str,
        session: CallSession,
        requester: Optional[SignalingConnection],
        requested_by: Optional[str]
    ) -> None:
        if command == RELAY_START_RECORDING:
            call = self.media_relay.start_recording
        elif command == RELAY_STOP_RECORDING:
            call = self.media_relay.stop_recording
        else:
            call = self.media_relay.terminate_session

        try:
            result = await call(session)
        except Exception as e:
            logger.error(f"[Coordinator] Media relay {command} raised for session {session.session_id}: {e}")
            result = RelayResult.failure(str(e))

        relay_calls.labels(command=command, outcome="ok" if result.ok else "error").inc()

        if command == RELAY_TERMINATE_SESSION:
            if not result.ok:
                logger.error(f"[Coordinator] Failed to terminate media for session {session.session_id}: {result.error}")
            return

        if not result.ok:
            logger.error(f"[Coordinator] Media relay {command} failed for session {session.session_id}: {result.error}")

        try:
            await self._complete_recording(command, session, result, requester, requested_by)
        except Exception as e:
            logger.error(f"[Coordinator] Error completing {command} for session {session.session_id}: {e}")
