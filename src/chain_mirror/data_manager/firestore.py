import asyncio
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from loguru import logger
from typing import Any, Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, db, firestore
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPIError

from .base import BaseDataManager
from chain_mirror.data_types import BLOCKS
from chain_mirror.errors import PersistenceError


class FirestoreDataManager(BaseDataManager):
    """
    A class to manage Firestore documents and Realtime Database blobs for a workspace
    """

    def __init__(self, workspace: str, **kwargs):
        """
        Initialize the Firebase app and clients

        Args:
            workspace (str): Name of the workspace partition to work with
            **kwargs: Configuration parameters
                - credentials_path (str): Service account JSON file (required)
                - database_url (str): Realtime Database URL used for blobs (required)
                - max_workers (int): Threads used for the blocking client calls (default: 8)
        """
        if 'credentials_path' not in kwargs:
            raise ValueError("credentials_path is required for Firestore configuration")
        if 'database_url' not in kwargs:
            raise ValueError("database_url is required for Firestore configuration")

        self.workspace = workspace
        self.app = firebase_admin.initialize_app(
            credentials.Certificate(kwargs['credentials_path']),
            {'databaseURL': kwargs['database_url']},
            name=f"chain-mirror-{workspace}",
        )
        self.client = firestore.client(app=self.app)
        self.executor = ThreadPoolExecutor(max_workers=kwargs.get('max_workers', 8))
        logger.info(f"Using Firestore storage for workspace {workspace}")

    def _collection(self, collection: str):
        return self.client.collection('workspaces').document(self.workspace).collection(collection)

    def _blob_reference(self, key: str):
        return db.reference(f"workspaces/{self.workspace}/contracts/{key}", app=self.app)

    async def _run(self, func: Callable, description: str) -> Any:
        # The Firebase Admin SDK is blocking, keep it off the event loop
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self.executor, func)
        except (GoogleAPIError, FirebaseError) as e:
            raise PersistenceError(f"Failed to {description}: {str(e)}") from e

    async def upsert(self, collection: str, key: str, record: Dict[str, Any], merge: bool = False) -> None:
        document = self._collection(collection).document(key)
        await self._run(partial(document.set, record, merge=merge), f"write {collection}/{key}")

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        document = self._collection(collection).document(key)
        snapshot = await self._run(document.get, f"read {collection}/{key}")
        return snapshot.to_dict() if snapshot.exists else None

    async def list_records(self, collection: str, order_by: str, direction: str = 'asc') -> List[Dict[str, Any]]:
        query = self._collection(collection).order_by(
            order_by,
            direction=firestore.Query.DESCENDING if direction == 'desc' else firestore.Query.ASCENDING
        )
        snapshots = await self._run(lambda: list(query.stream()), f"list {collection}")
        return [snapshot.to_dict() for snapshot in snapshots]

    async def get_persisted_block_numbers(self) -> List[int]:
        # Only project the block number, full blocks are large
        query = self._collection(BLOCKS).order_by('number', direction=firestore.Query.ASCENDING).select(['number'])
        snapshots = await self._run(lambda: list(query.stream()), f"list {BLOCKS}")
        return [int(snapshot.to_dict()['number']) for snapshot in snapshots]

    async def store_blob(self, key: str, value: Any) -> None:
        reference = self._blob_reference(key)
        await self._run(partial(reference.set, value), f"store blob {key}")

    async def get_blob(self, key: str) -> Any:
        reference = self._blob_reference(key)
        return await self._run(reference.get, f"read blob {key}")
