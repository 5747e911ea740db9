# stockroom/services/change_feed.py
"""
Relays row-level changes on the inventory table to every realtime client.

The database trigger installed by the initial migration publishes one JSON
NOTIFY per inserted/updated/deleted row on CHANGE_FEED_CHANNEL. This module
keeps a single dedicated asyncpg connection LISTENing on that channel,
queues payloads in arrival order and hands each one to the ConnectionManager.

Delivery is at-most-once. NOTIFY has no replay, so anything published while
the listener is reconnecting is lost and clients cannot detect the gap.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import asyncpg

from stockroom.core.exceptions import FeedDisconnected
from stockroom.schemas.realtime import ChangeEvent
from stockroom.services.websockets.manager import ConnectionManager

logger = logging.getLogger(__name__)


class ChangeFeedListener:
    """
    Long-lived subscription, started once at boot and stopped at shutdown.

    Args:
        dsn: libpq-style connection string for asyncpg
        manager: registry the events are broadcast through
        channel: NOTIFY channel written by the trigger
        table: only events for this table are relayed
        initial_delay / max_delay: reconnect backoff bounds, in seconds
        connect: coroutine returning an asyncpg connection (asyncpg.connect)
    """

    def __init__(
        self,
        dsn: str,
        manager: ConnectionManager,
        channel: str = "inventory_changes",
        table: str = "inventory",
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        health_check_interval: float = 15.0,
        connect: Optional[Callable[[str], Awaitable[Any]]] = None,
    ):
        self.dsn = dsn
        self.manager = manager
        self.channel = channel
        self.table = table
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.health_check_interval = health_check_interval
        self._connect = connect or asyncpg.connect

        self._queue: asyncio.Queue = asyncio.Queue()
        self._connection = None
        self._tasks = []
        self._stopping = False
        self._delay = initial_delay

        self.connected = False
        self.reconnect_attempts = 0
        self.events_relayed = 0

    def status(self) -> dict:
        return {
            "channel": self.channel,
            "table": self.table,
            "connected": self.connected,
            "reconnect_attempts": self.reconnect_attempts,
            "events_relayed": self.events_relayed,
        }

    async def start(self):
        self._stopping = False
        self._tasks = [
            asyncio.create_task(self._run(), name="change-feed-listener"),
            asyncio.create_task(self._relay_loop(), name="change-feed-relay"),
        ]
        for task in self._tasks:
            task.add_done_callback(self._on_task_done)
        logger.info(f"Change feed listener starting on channel '{self.channel}'")

    def _on_task_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Change feed task {task.get_name()} crashed: {exc!r}", exc_info=exc)
        elif not self._stopping:
            logger.error(f"Change feed task {task.get_name()} exited; inventory changes are no longer relayed")

    async def stop(self):
        self._stopping = True
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self._close_connection()
        self.connected = False
        logger.info("Change feed listener stopped")

    def _next_delay(self) -> float:
        delay = self._delay
        self._delay = min(self._delay * 2, self.max_delay)
        return delay

    async def _run(self):
        while not self._stopping:
            try:
                await self._listen_once()
            except FeedDisconnected as e:
                logger.warning(f"{e.message}; events are not relayed until resubscribed")
            except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                logger.error(f"Change feed connection failed: {e}")
            except Exception:
                # Connect timeouts and anything else must not end the loop
                logger.exception("Unexpected change feed error")
            finally:
                self.connected = False
                await self._close_connection()

            if self._stopping:
                break
            delay = self._next_delay()
            self.reconnect_attempts += 1
            logger.info(f"Reconnecting to change feed in {delay:.1f}s (attempt {self.reconnect_attempts})")
            await asyncio.sleep(delay)

    async def _listen_once(self):
        """Subscribe and block until the connection drops. Always ends by raising."""
        connection = await self._connect(self.dsn)
        self._connection = connection

        lost = asyncio.Event()
        connection.add_termination_listener(lambda conn: lost.set())
        await connection.add_listener(self.channel, self._on_notification)

        self.connected = True
        self._delay = self.initial_delay
        logger.info(f"Subscribed to change feed channel '{self.channel}'")

        while not lost.is_set():
            try:
                await asyncio.wait_for(lost.wait(), timeout=self.health_check_interval)
            except asyncio.TimeoutError:
                if connection.is_closed():
                    break

        raise FeedDisconnected(f"Change feed subscription on '{self.channel}' dropped")

    async def _close_connection(self):
        connection, self._connection = self._connection, None
        if connection is None or connection.is_closed():
            return
        try:
            await connection.close(timeout=5)
        except Exception as e:
            logger.debug(f"Error closing change feed connection: {e}")

    def _on_notification(self, connection, pid, channel, payload):
        self._queue.put_nowait(payload)

    async def _relay_loop(self):
        while True:
            payload = await self._queue.get()
            try:
                await self.relay(payload)
            except Exception:
                logger.exception("Unexpected error relaying change event")
            finally:
                self._queue.task_done()

    async def relay(self, payload) -> int:
        """Parse one notification and broadcast it. Returns clients reached."""
        try:
            event = ChangeEvent.from_notification(payload)
        except ValueError as e:
            logger.warning(f"Dropping malformed change payload: {e}")
            return 0

        if event.table != self.table:
            logger.debug(f"Ignoring change on table '{event.table}'")
            return 0

        delivered = await self.manager.broadcast(event.to_frame())
        self.events_relayed += 1
        logger.debug(f"Relayed {event.operation.value} on {event.table} to {delivered} clients")
        return delivered
