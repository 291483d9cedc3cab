import asyncio
import time
from loguru import logger
from typing import Any, AsyncIterator, Awaitable, Callable, Dict
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.providers import WebSocketProvider
from web3.exceptions import Web3Exception, BlockNotFound, TransactionNotFound
from websockets.exceptions import WebSocketException

from chain_mirror.data_types import TransportType, Workspace
from chain_mirror.errors import NotFoundError, TransportError
from chain_mirror.utils import async_retry
from chain_mirror.metrics import (
    CHAIN_TIP_BLOCK,
    RPC_REQUESTS,
    RPC_ERRORS,
    RPC_LATENCY,
)

# Failures of the node connection, as opposed to missing data
TRANSPORT_EXCEPTIONS = (Web3Exception, WebSocketException, OSError, asyncio.TimeoutError)


class EVMIndexer:
    """Chain client for one workspace, over a websocket subscription or HTTP polling"""

    def __init__(self, workspace: Workspace, rpc_retries: int = 3, poll_interval: float = 2) -> None:
        self.workspace = workspace
        self.transport = workspace.transport
        self.retries = rpc_retries
        self.poll_interval = poll_interval
        self.w3: AsyncWeb3 | None = None
        self.subscription_id: str | None = None
        self._last_polled_block: int | None = None

        # Initialize RPC metrics
        for method in ['get_block', 'get_block_number', 'get_transaction_receipt']:
            RPC_REQUESTS.labels(workspace=workspace.name, method=method).inc(0)
            RPC_ERRORS.labels(workspace=workspace.name, method=method).inc(0)

    async def connect(self) -> None:
        """Open the connection and subscribe to new block headers

        Returns once the node acknowledged the subscription (websocket) or
        answered a first block number request (HTTP).
        """
        logger.info(f"Connecting to {self.workspace.rpc_server} over {self.transport.value}")
        try:
            if self.transport == TransportType.HTTP:
                self.w3 = AsyncWeb3(AsyncHTTPProvider(self.workspace.rpc_server))
                self._last_polled_block = await self.w3.eth.get_block_number()
            else:
                self.w3 = await AsyncWeb3(WebSocketProvider(self.workspace.rpc_server))
                self.subscription_id = await self.w3.eth.subscribe("newHeads")
        except TRANSPORT_EXCEPTIONS as e:
            raise TransportError(f"Could not connect to {self.workspace.rpc_server}", reason=str(e)) from e

    async def disconnect(self) -> None:
        if self.w3 is None or self.transport == TransportType.HTTP:
            return
        try:
            await self.w3.provider.disconnect()
        except TRANSPORT_EXCEPTIONS as e:
            logger.warning(f"Error while closing connection to {self.workspace.rpc_server}: {str(e)}")
        finally:
            self.subscription_id = None

    async def headers(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield new block headers until the connection fails

        Raises:
            TransportError: when the subscription or polling breaks
        """
        if self.w3 is None:
            raise TransportError("Not connected")
        if self.transport == TransportType.HTTP:
            async for header in self._poll_headers():
                yield header
            return

        try:
            async for response in self.w3.socket.process_subscriptions():
                yield response['result']
        except TRANSPORT_EXCEPTIONS as e:
            raise TransportError("Subscription to new block headers failed", reason=str(e)) from e
        raise TransportError("Subscription to new block headers closed by the node")

    async def _poll_headers(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            await asyncio.sleep(self.poll_interval)
            latest = await self._request(
                'get_block_number',
                lambda: self.w3.eth.get_block_number(),
            )
            start = self._last_polled_block + 1 if self._last_polled_block is not None else latest
            for number in range(start, latest + 1):
                yield {'number': number}
            self._last_polled_block = max(latest, self._last_polled_block or 0)

    async def _request(self, method: str, call: Callable[[], Awaitable[Any]]) -> Any:
        if self.w3 is None:
            raise TransportError("Not connected")
        start_time = time.time()
        try:
            result = await call()
            RPC_REQUESTS.labels(workspace=self.workspace.name, method=method).inc()
            RPC_LATENCY.labels(workspace=self.workspace.name, method=method).observe(time.time() - start_time)
            return result
        except (BlockNotFound, TransactionNotFound) as e:
            RPC_ERRORS.labels(workspace=self.workspace.name, method=method).inc()
            raise NotFoundError(str(e)) from e
        except TRANSPORT_EXCEPTIONS as e:
            RPC_ERRORS.labels(workspace=self.workspace.name, method=method).inc()
            logger.error(f"RPC call {method} failed: {type(e).__name__}: {str(e)}")
            raise TransportError(f"RPC call {method} failed", reason=str(e)) from e

    @async_retry(retries=3, base_delay=1, exponential_backoff=False, jitter=False, exceptions=(TransportError,))
    async def get_block_number(self) -> int:
        block_number = await self._request('get_block_number', lambda: self.w3.eth.get_block_number())
        CHAIN_TIP_BLOCK.labels(workspace=self.workspace.name).set(block_number)
        return block_number

    async def get_block(self, block_identifier: int | str, full_transactions: bool = True) -> dict:
        logger.debug(f"Fetching block {block_identifier}")
        return await self._request(
            'get_block',
            lambda: self.w3.eth.get_block(block_identifier, full_transactions=full_transactions),
        )

    @async_retry(retries=3, base_delay=1, exponential_backoff=True, jitter=True, exceptions=(TransportError, NotFoundError))
    async def get_transaction_receipt(self, transaction_hash: str) -> dict:
        return await self._request(
            'get_transaction_receipt',
            lambda: self.w3.eth.get_transaction_receipt(transaction_hash),
        )
