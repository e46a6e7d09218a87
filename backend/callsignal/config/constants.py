"""
Signaling wire constants.

Event names exchanged over the WebSocket, session status values and
media relay command names. Environment-dependent settings belong in settings.py.
"""

# ==============================================================================
# INBOUND EVENTS (client -> server)
# ==============================================================================

EVENT_REGISTER: str = "register"
EVENT_CALL: str = "call"
EVENT_ANSWER: str = "answer"
EVENT_ICE_CANDIDATE: str = "ice-candidate"
EVENT_END_CALL: str = "end-call"
EVENT_START_RECORDING_REQUEST: str = "start-recording-request"
EVENT_STOP_RECORDING_REQUEST: str = "stop-recording-request"

# Not a wire frame; emitted by the transport when the socket closes
EVENT_DISCONNECT: str = "disconnect"

# ==============================================================================
# OUTBOUND EVENTS (server -> client)
# ==============================================================================

EVENT_REGISTERED: str = "registered"
EVENT_INCOMING_CALL: str = "incoming-call"
EVENT_CALL_SESSION_INFO: str = "call-session-info"
EVENT_CALL_ANSWERED: str = "call-answered"
EVENT_CALL_ENDED: str = "call-ended"
EVENT_START_RECORDING_SIGNAL: str = "start-recording-signal"
EVENT_STOP_RECORDING_SIGNAL: str = "stop-recording-signal"
EVENT_RECORDING_STATUS: str = "recording-status"
EVENT_ERROR: str = "error"

# ==============================================================================
# SESSION STATUS
# ==============================================================================

STATUS_CALLING: str = "calling"
STATUS_CONNECTED: str = "connected"

# ==============================================================================
# MEDIA RELAY COMMANDS
# ==============================================================================

RELAY_START_RECORDING: str = "start-recording"
RELAY_STOP_RECORDING: str = "stop-recording"
RELAY_TERMINATE_SESSION: str = "terminate-session"

# Call-ended reason attached by the stale session sweep
END_REASON_TIMEOUT: str = "timeout"
