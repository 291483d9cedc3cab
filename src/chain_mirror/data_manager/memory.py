import copy
from collections import defaultdict
from loguru import logger
from typing import Any, Dict, List, Optional

from .base import BaseDataManager


class MemoryDataManager(BaseDataManager):
    """
    A data manager keeping every collection in process memory
    """

    def __init__(self, workspace: str, **kwargs):
        """
        Initialize in-memory storage

        Args:
            workspace (str): Name of the workspace partition to work with
            **kwargs: Ignored
        """
        self.workspace = workspace
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.blobs: Dict[str, Any] = {}
        logger.info(f"Using in-memory storage for workspace {workspace}")

    async def upsert(self, collection: str, key: str, record: Dict[str, Any], merge: bool = False) -> None:
        existing = self.collections[collection].get(key)
        if merge and existing is not None:
            record = {**existing, **record}
        self.collections[collection][key] = copy.deepcopy(record)

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        record = self.collections[collection].get(key)
        return copy.deepcopy(record) if record is not None else None

    async def list_records(self, collection: str, order_by: str, direction: str = 'asc') -> List[Dict[str, Any]]:
        records = [
            record for record in self.collections[collection].values()
            if order_by in record
        ]
        records.sort(key=lambda record: record[order_by], reverse=direction == 'desc')
        return copy.deepcopy(records)

    async def store_blob(self, key: str, value: Any) -> None:
        self.blobs[key] = copy.deepcopy(value)

    async def get_blob(self, key: str) -> Any:
        return copy.deepcopy(self.blobs.get(key))
