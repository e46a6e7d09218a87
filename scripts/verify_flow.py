import asyncio
import httpx
import websockets
import json
import logging
import sys

import os

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

BASE_URL = os.getenv("BASE_URL", "http://localhost:3001")
WS_URL = os.getenv("WS_URL", "ws://localhost:3001")


async def expect(ws, msg_type, timeout=5.0):
    """Receive frames until one of msg_type arrives."""
    async with asyncio.timeout(timeout):
        while True:
            data = json.loads(await ws.recv())
            logger.info(f"Received: {data}")
            if data.get("type") == msg_type:
                return data


async def register(ws, role):
    await ws.send(json.dumps({"type": "register", "role": role}))
    await expect(ws, "registered")
    logger.info(f"Registered {role}")


async def check_health(client):
    try:
        resp = await client.get(f"{BASE_URL}/health")
        logger.info(f"Health: {resp.status_code} {resp.text}")
        return resp.status_code == 200
    except Exception as e:
        logger.error(f"Request Error (Health): {e}")
        return False


async def run_scenario():
    async with httpx.AsyncClient() as client:
        if not await check_health(client):
            logger.error("Server not reachable, aborting")
            return False

        async with websockets.connect(f"{WS_URL}/ws") as ws_a, websockets.connect(f"{WS_URL}/ws") as ws_b:
            # 1. Both parties register
            await register(ws_a, "userA")
            await register(ws_b, "userB")

            # 2. userA calls userB
            await ws_a.send(json.dumps({"type": "call", "from": "userA", "to": "userB", "offer": {"sdp": "offer"}}))
            incoming = await expect(ws_b, "incoming-call")
            info = await expect(ws_b, "call-session-info")
            session_id = info["sessionId"]
            logger.info(f"Incoming call from {incoming['from']}, session {session_id}")

            # 3. userB answers
            await ws_b.send(json.dumps({"type": "answer", "from": "userB", "to": "userA", "answer": {"sdp": "answer"}}))
            await expect(ws_a, "call-answered")

            resp = await client.get(f"{BASE_URL}/api/sessions/{session_id}")
            logger.info(f"Session after answer: {resp.json()}")
            if resp.json().get("status") != "connected":
                logger.error("Session did not reach 'connected'")
                return False

            # 4. Recording round trip
            await ws_a.send(json.dumps({"type": "start-recording-request", "from": "userA", "to": "userB"}))
            await expect(ws_b, "start-recording-signal")
            await ws_a.send(json.dumps({"type": "stop-recording-request", "from": "userA", "to": "userB"}))
            await expect(ws_b, "stop-recording-signal")

            # 5. userA hangs up
            await ws_a.send(json.dumps({"type": "end-call", "from": "userA", "to": "userB"}))
            await expect(ws_b, "call-ended")

            resp = await client.get(f"{BASE_URL}/api/sessions/{session_id}")
            if resp.status_code != 404:
                logger.error(f"Session {session_id} still present after end-call")
                return False

    logger.info("✅ Flow verified")
    return True


if __name__ == "__main__":
    ok = asyncio.run(run_scenario())
    sys.exit(0 if ok else 1)
