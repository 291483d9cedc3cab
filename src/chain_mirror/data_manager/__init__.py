from enum import Enum
from .base import BaseDataManager
from .memory import MemoryDataManager

class StorageType(Enum):
    MEMORY = "memory"
    FIRESTORE = "firestore"

class DataManagerFactory:
    _managers = {
        StorageType.MEMORY: MemoryDataManager,
    }

    @classmethod
    def get_manager(cls, storage_type: str, workspace: str, config: dict | None = None) -> BaseDataManager:
        """
        Factory method to get the appropriate data manager instance

        Args:
            storage_type (str): Type of storage from config
            workspace (str): Name of the workspace partition
            config (dict): Storage-specific configuration
        Returns:
            BaseDataManager: Instance of the appropriate data manager
        """
        try:
            storage_enum = StorageType(storage_type.lower())
        except ValueError:
            raise ValueError(f"Invalid storage type: {storage_type}. Supported types: {[t.value for t in StorageType]}")

        if storage_enum == StorageType.FIRESTORE:
            # Imported lazily so the memory backend works without Firebase credentials
            from .firestore import FirestoreDataManager
            manager_class = FirestoreDataManager
        else:
            manager_class = cls._managers[storage_enum]

        return manager_class(workspace=workspace, **(config or {}))

def get_data_manager(storage_type: str, workspace: str, config: dict | None = None) -> BaseDataManager:
    return DataManagerFactory.get_manager(storage_type, workspace, config)

__all__ = [
    "BaseDataManager",
    "MemoryDataManager",
    "StorageType",
    "DataManagerFactory",
    "get_data_manager",
]
