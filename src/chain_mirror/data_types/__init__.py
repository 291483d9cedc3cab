from .contracts import (
    ArtifactBundle,
    ContractUpdate,
)
from .projects import (
    BrownieProject,
    ProjectLayout,
    TruffleProject,
)
from .sync import (
    BackfillResult,
    BlockSyncResult,
    ConnectionState,
    TransactionSyncResult,
)
from .workspace import (
    TransportType,
    Workspace,
)

# Collections of the document store
BLOCKS = "blocks"
TRANSACTIONS = "transactions"
CONTRACTS = "contracts"

__all__ = [
    "ArtifactBundle",
    "ContractUpdate",
    "BrownieProject",
    "ProjectLayout",
    "TruffleProject",
    "BackfillResult",
    "BlockSyncResult",
    "ConnectionState",
    "TransactionSyncResult",
    "TransportType",
    "Workspace",
    "BLOCKS",
    "TRANSACTIONS",
    "CONTRACTS",
]
