from typing import List

from .records import sanitize, to_record


class BlockParser:
    @staticmethod
    def parse_raw(raw_block: dict) -> dict:
        """Sanitized block record, with transactions reduced to their hashes"""
        block = sanitize(to_record(raw_block))
        block['transactions'] = BlockParser.transaction_hashes(block)
        return block

    @staticmethod
    def transaction_hashes(block: dict) -> List[str]:
        # Blocks fetched without full transactions only carry the hashes
        return [
            tx['hash'] if isinstance(tx, dict) else tx
            for tx in block.get('transactions', [])
        ]
