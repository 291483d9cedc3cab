from typing import Optional

from .records import sanitize, to_record


class TransactionParser:
    @staticmethod
    def parse_raw(raw_tx: dict) -> dict:
        return sanitize(to_record(raw_tx))

    @staticmethod
    def merge_receipt(transaction: dict, receipt: Optional[dict], timestamp: int) -> dict:
        """Merge the receipt and the parent block timestamp into a sanitized transaction"""
        return {
            **transaction,
            'receipt': to_record(receipt) if receipt is not None else None,
            'timestamp': timestamp,
        }

    @staticmethod
    def needs_signature(raw_tx: dict) -> bool:
        return all(raw_tx.get(field) is not None for field in ('to', 'input', 'value'))
