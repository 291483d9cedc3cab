import asyncio
from loguru import logger
from typing import Any, Awaitable, Callable, Coroutine, Dict, Optional, Set

from chain_mirror.data_types import ConnectionState
from chain_mirror.errors import ChainMirrorError, TransportError
from chain_mirror.gaps import Backfiller
from chain_mirror.indexer import EVMIndexer
from chain_mirror.synchronizer import BlockSynchronizer
from chain_mirror.metrics import RECONNECTS


class ResilienceController:
    """
    Owns the subscribe/reconnect lifecycle

    DISCONNECTED -> CONNECTING -> SUBSCRIBED, and back to CONNECTING on any
    transport error after a fixed delay. There is no retry limit.
    """

    def __init__(
        self,
        client: EVMIndexer,
        backfiller: Backfiller,
        synchronizer: BlockSynchronizer,
        workspace: str,
        reconnect_delay: float = 5,
        on_subscribed: Optional[Callable[[], Awaitable[None]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.backfiller = backfiller
        self.synchronizer = synchronizer
        self.workspace = workspace
        self.reconnect_delay = reconnect_delay
        self.on_subscribed = on_subscribed
        self.sleep = sleep
        self.state = ConnectionState.DISCONNECTED
        self._reconnect_pending = False
        self._tasks: Set[asyncio.Task] = set()

    async def run(self) -> None:
        while True:
            await self.connect()

    async def connect(self) -> None:
        """One connection attempt: subscribe, route headers until the transport fails, then wait"""
        self.state = ConnectionState.CONNECTING
        try:
            await self.client.connect()
            await self._subscribed()
            async for header in self.client.headers():
                self.on_header(header)
        except TransportError as error:
            await self.client.disconnect()
            await self.on_error(error)

    async def _subscribed(self) -> None:
        self.state = ConnectionState.SUBSCRIBED
        logger.info(f"Connected to {self.client.workspace.rpc_server}")
        self._spawn(self._backfill())
        if self.on_subscribed is not None:
            await self.on_subscribed()

    def on_header(self, header: Dict[str, Any]) -> None:
        if self.state != ConnectionState.SUBSCRIBED:
            return
        block_identifier = header.get('hash') or header['number']
        self._spawn(self._sync_header(block_identifier))

    async def on_error(self, error: TransportError) -> bool:
        """
        Wait before the next connection attempt

        Returns:
            bool: False when a reconnect was already pending and this error was ignored
        """
        if self._reconnect_pending:
            logger.debug(f"Reconnect already pending, ignoring: {str(error)}")
            return False

        self._reconnect_pending = True
        self.state = ConnectionState.CONNECTING
        try:
            if error.reason:
                logger.error(f"Could not connect to {self.client.workspace.rpc_server}. Error: {error.reason}")
            else:
                logger.error(f"Could not connect to {self.client.workspace.rpc_server}.")
            logger.info(f"Trying to reconnect in {self.reconnect_delay}s...")
            RECONNECTS.labels(workspace=self.workspace).inc()
            await self.sleep(self.reconnect_delay)
        finally:
            self._reconnect_pending = False
        return True

    async def _backfill(self) -> None:
        try:
            await self.backfiller.backfill()
        except ChainMirrorError as e:
            logger.error(f"Backfill failed: {str(e)}")

    async def _sync_header(self, block_identifier: Any) -> None:
        # In-flight syncs are allowed to finish after a disconnect
        try:
            await self.synchronizer.sync_block_by_id(block_identifier)
        except ChainMirrorError as e:
            logger.error(f"Error while receiving data: {str(e)}")

    def _spawn(self, coroutine: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
