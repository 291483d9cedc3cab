import asyncio
from loguru import logger
from typing import List, Sequence

from chain_mirror.data_manager import BaseDataManager
from chain_mirror.data_types import BackfillResult
from chain_mirror.errors import ChainMirrorError
from chain_mirror.indexer import EVMIndexer
from chain_mirror.synchronizer import BlockSynchronizer
from chain_mirror.metrics import BACKFILL_MISSING_BLOCKS


def compute_missing(persisted: Sequence[int], latest: int, first_block: int = 1) -> List[int]:
    """
    Find the block numbers absent from the store

    Walks the targets once, advancing a pointer over the persisted numbers
    instead of building and diffing sets.

    Args:
        persisted (Sequence[int]): Persisted block numbers, ascending
        latest (int): Current chain height, always a target when not persisted
        first_block (int): First block number expected in the store

    Returns:
        List[int]: Missing numbers in [first_block, max(last persisted, latest)], ascending
    """
    numbers = [number for number in persisted if number >= first_block]
    last = max(numbers[-1], latest) if numbers else latest

    missing = []
    i = 0
    for target in range(first_block, last + 1):
        # Duplicates can only come from a store that is not keyed by number
        while i < len(numbers) and numbers[i] < target:
            i += 1
        if i < len(numbers) and numbers[i] == target:
            i += 1
        else:
            missing.append(target)
    return missing


class Backfiller:
    """Brings the persisted blocks back in line with the chain after a (re)connect"""

    def __init__(
        self,
        client: EVMIndexer,
        data_manager: BaseDataManager,
        synchronizer: BlockSynchronizer,
        workspace: str,
        first_block: int = 1,
        max_concurrency: int = 20,
    ) -> None:
        self.client = client
        self.data_manager = data_manager
        self.synchronizer = synchronizer
        self.workspace = workspace
        self.first_block = first_block
        self.semaphore = asyncio.Semaphore(max_concurrency)

    async def backfill(self) -> BackfillResult:
        persisted = await self.data_manager.get_persisted_block_numbers()
        latest = await self.client.get_block_number()
        missing = compute_missing(persisted, latest, self.first_block)

        BACKFILL_MISSING_BLOCKS.labels(workspace=self.workspace).set(len(missing))
        logger.info(f"Latest block is {latest}, {len(missing)} blocks missing from storage")

        result = BackfillResult(latest=latest, missing=missing)
        outcomes = await asyncio.gather(*(self._sync_missing(number) for number in missing))
        for number, synced in zip(missing, outcomes):
            (result.synced if synced else result.failed).append(number)

        if result.failed:
            logger.warning(f"Backfill left {len(result.failed)} blocks unsynced, they will be retried on the next pass")
        return result

    async def _sync_missing(self, number: int) -> bool:
        async with self.semaphore:
            try:
                block_result = await self.synchronizer.sync_block_by_id(number)
            except ChainMirrorError as e:
                logger.error(f"Failed to fetch block {number}: {str(e)}")
                return False
        return block_result.synced
