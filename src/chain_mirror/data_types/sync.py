from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


@dataclass
class TransactionSyncResult:
    hash: str
    synced: bool
    function_signature: Optional[str] = None
    contract_address: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class BlockSyncResult:
    number: int
    synced: bool
    transactions: List[TransactionSyncResult] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def failed_transactions(self) -> List[TransactionSyncResult]:
        return [tx for tx in self.transactions if not tx.synced]


@dataclass
class BackfillResult:
    latest: int
    missing: List[int] = field(default_factory=list)
    synced: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
