import asyncio
from loguru import logger
from web3 import Web3

from chain_mirror.data_manager import BaseDataManager
from chain_mirror.data_types import (
    BLOCKS,
    CONTRACTS,
    TRANSACTIONS,
    BlockSyncResult,
    TransactionSyncResult,
)
from chain_mirror.errors import ChainMirrorError
from chain_mirror.indexer import EVMIndexer
from chain_mirror.parsers import BlockParser, TransactionParser
from chain_mirror.signatures import SignatureResolver
from chain_mirror.metrics import (
    BLOCKS_SYNCED,
    LATEST_SYNCED_BLOCK,
    SYNC_FAILURES,
    TRANSACTIONS_SYNCED,
)


class BlockSynchronizer:
    """Persists blocks and their transactions, one independent unit of work per transaction"""

    def __init__(
        self,
        client: EVMIndexer,
        data_manager: BaseDataManager,
        signature_resolver: SignatureResolver,
        workspace: str,
    ) -> None:
        self.client = client
        self.data_manager = data_manager
        self.signature_resolver = signature_resolver
        self.workspace = workspace

    async def sync_block_by_id(self, block_identifier: int | str) -> BlockSyncResult:
        """Fetch a block with its transactions, then sync it"""
        block = await self.client.get_block(block_identifier, full_transactions=True)
        return await self.sync_block(block)

    async def sync_block(self, block: dict) -> BlockSyncResult:
        s_block = BlockParser.parse_raw(block)
        number = s_block['number']

        try:
            await self.data_manager.upsert(BLOCKS, str(number), s_block)
        except ChainMirrorError as e:
            logger.error(f"Failed to persist block {number}: {str(e)}")
            SYNC_FAILURES.labels(workspace=self.workspace, unit='block').inc()
            return BlockSyncResult(number=number, synced=False, error=e)

        logger.info(f"Synced block {number}")
        BLOCKS_SYNCED.labels(workspace=self.workspace).inc()
        LATEST_SYNCED_BLOCK.labels(workspace=self.workspace).set(number)

        # Blocks fetched by hash only are not expanded here
        transactions = [tx for tx in block.get('transactions', []) if not isinstance(tx, (bytes, str))]
        results = await asyncio.gather(
            *(self.sync_transaction(s_block, tx) for tx in transactions)
        )
        return BlockSyncResult(number=number, synced=True, transactions=list(results))

    async def sync_transaction(self, block: dict, transaction: dict) -> TransactionSyncResult:
        s_transaction = TransactionParser.parse_raw(transaction)
        tx_hash = s_transaction['hash']

        try:
            receipt = await self.client.get_transaction_receipt(tx_hash)
            tx_synced = TransactionParser.merge_receipt(s_transaction, receipt, block['timestamp'])

            if TransactionParser.needs_signature(transaction):
                tx_synced['functionSignature'] = await self.signature_resolver.resolve_or_none(
                    s_transaction['to'], s_transaction['input'], transaction['value']
                )

            await self.data_manager.upsert(TRANSACTIONS, tx_hash, tx_synced)
            logger.info(f"Synced transaction {tx_hash}")
            TRANSACTIONS_SYNCED.labels(workspace=self.workspace).inc()

            contract_address = None
            if not tx_synced.get('to'):
                contract_address = await self._sync_created_contract(tx_synced['receipt'])
        except ChainMirrorError as e:
            logger.error(f"Failed to sync transaction {tx_hash}: {str(e)}")
            SYNC_FAILURES.labels(workspace=self.workspace, unit='transaction').inc()
            return TransactionSyncResult(hash=tx_hash, synced=False, error=e)

        return TransactionSyncResult(
            hash=tx_hash,
            synced=True,
            function_signature=tx_synced.get('functionSignature'),
            contract_address=contract_address,
        )

    async def _sync_created_contract(self, receipt: dict) -> str | None:
        address = receipt.get('contractAddress')
        if not address:
            return None
        address = Web3.to_checksum_address(address)
        # Merge so a name or ABI found from an artifact is never clobbered
        await self.data_manager.upsert(CONTRACTS, address, {'address': address}, merge=True)
        logger.info(f"Synced new contract at {address}")
        return address
