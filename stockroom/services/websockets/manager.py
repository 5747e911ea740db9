# stockroom/services/websockets/manager.py
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket

from stockroom.core.enums import ConnectionState
from stockroom.schemas.realtime import ping_frame, welcome_frame

logger = logging.getLogger(__name__)


class ClientConnection:
    """One realtime client and its liveness bookkeeping."""

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.state = ConnectionState.OPEN
        self.connected_at = datetime.now(timezone.utc)
        self.awaiting_pong = False
        self.missed_probes = 0

    async def send_json(self, message: Dict[str, Any]):
        await self.websocket.send_text(json.dumps(message, default=str))

    def __repr__(self):
        return f"<ClientConnection(id={self.id}, state={self.state.value}, missed={self.missed_probes})>"


class ConnectionManager:
    """
    Registry of open realtime connections owned by the server process.

    Connections move open -> registered -> closed. Only registered
    connections receive broadcasts, so a client sees events relayed after its
    welcome frame and never earlier ones.
    """

    def __init__(self, max_missed_probes: int = 2, send_timeout: float = 5.0):
        self.max_missed_probes = max_missed_probes
        self.send_timeout = send_timeout
        self.active_connections: Dict[str, ClientConnection] = {}

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> Optional[ClientConnection]:
        """Accept, send the welcome frame, then register. None if the welcome could not be sent."""
        await websocket.accept()
        connection = ClientConnection(websocket)
        try:
            await connection.send_json(welcome_frame())
        except Exception as e:
            logger.warning(f"Welcome frame failed for {connection.id}: {e}")
            connection.state = ConnectionState.CLOSED
            return None

        connection.state = ConnectionState.REGISTERED
        self.active_connections[connection.id] = connection
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")
        return connection

    def disconnect(self, connection: ClientConnection):
        connection.state = ConnectionState.CLOSED
        if self.active_connections.pop(connection.id, None) is not None:
            logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    async def close(self, connection: ClientConnection, code: int = 1000):
        self.disconnect(connection)
        try:
            await connection.websocket.close(code=code)
        except Exception as e:
            # Already gone on the client side
            logger.debug(f"Close failed for {connection.id}: {e}")

    async def close_all(self):
        for connection in list(self.active_connections.values()):
            await self.close(connection, code=1001)

    def handle_client_message(self, connection: ClientConnection, raw: str):
        """The only client-to-server message is the liveness pong."""
        message_type = raw.strip()
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, dict):
                message_type = parsed.get("type", "")
        except ValueError:
            pass

        if message_type == "pong":
            connection.awaiting_pong = False
            connection.missed_probes = 0
        else:
            logger.debug(f"Ignoring client message on {connection.id}: {raw[:100]}")

    async def _send_with_timeout(self, connection: ClientConnection, json_message: str):
        await asyncio.wait_for(connection.websocket.send_text(json_message), timeout=self.send_timeout)

    async def broadcast(self, message: dict) -> int:
        """
        Send to every registered connection concurrently. Returns the number
        of clients reached. A send that fails or exceeds send_timeout drops
        that connection only.
        """
        json_message = json.dumps(message, default=str)
        connections = list(self.active_connections.values())
        results = await asyncio.gather(
            *(self._send_with_timeout(connection, json_message) for connection in connections),
            return_exceptions=True,
        )

        delivered = 0
        for connection, result in zip(connections, results):
            if isinstance(result, BaseException):
                logger.error(f"Error sending to WebSocket {connection.id}: {result!r}")
                self.disconnect(connection)
            else:
                delivered += 1
        return delivered

    async def probe_all(self):
        """
        Liveness tick. A connection whose previous probe is still unanswered
        accrues a miss; after max_missed_probes misses it is closed and removed.
        """
        for connection in list(self.active_connections.values()):
            if connection.awaiting_pong:
                connection.missed_probes += 1
                if connection.missed_probes >= self.max_missed_probes:
                    logger.info(f"Pruning {connection.id} after {connection.missed_probes} unanswered probes")
                    await self.close(connection, code=1011)
                    continue

            try:
                await connection.send_json(ping_frame())
                connection.awaiting_pong = True
            except Exception as e:
                logger.warning(f"Probe failed for {connection.id}, presumed dead: {e}")
                self.disconnect(connection)
