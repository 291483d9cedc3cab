from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from chain_mirror.data_types import BLOCKS


class BaseDataManager(ABC):
    """Abstract base class for all data managers"""

    @abstractmethod
    def __init__(self, workspace: str, **kwargs):
        """
        Initialize data manager

        Args:
            workspace (str): Name of the workspace partition to work with
            **kwargs: Implementation-specific configuration parameters
        """
        pass

    @abstractmethod
    async def upsert(self, collection: str, key: str, record: Dict[str, Any], merge: bool = False) -> None:
        """
        Write a record into a collection

        Args:
            collection (str): Name of the collection
            key (str): Unique key of the record
            record (Dict[str, Any]): Record to write
            merge (bool): Keep the fields of an existing record that are absent from `record`
        """
        pass

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_records(self, collection: str, order_by: str, direction: str = 'asc') -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def store_blob(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def get_blob(self, key: str) -> Any:
        pass

    async def get_persisted_block_numbers(self) -> List[int]:
        """
        Get the numbers of every persisted block

        Returns:
            List[int]: Block numbers in ascending order
        """
        records = await self.list_records(BLOCKS, order_by='number', direction='asc')
        return [int(record['number']) for record in records]
