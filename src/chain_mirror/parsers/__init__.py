from .blocks import BlockParser
from .records import sanitize, to_record
from .transactions import TransactionParser

__all__ = [
    "BlockParser",
    "TransactionParser",
    "sanitize",
    "to_record",
]
