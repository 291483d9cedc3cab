"""
Unit tests for chain_mirror/data_manager.

Tests verify:
- Upserts overwrite by default and merge on request
- Records are listed ordered by a field, in both directions
- Persisted block numbers come back ascending
- The factory rejects unknown storage types
"""

from __future__ import annotations

import pytest

from chain_mirror.data_manager import MemoryDataManager, get_data_manager


class TestMemoryDataManager:
    @pytest.mark.asyncio
    async def test_overwrite_and_merge(self, data_manager):
        await data_manager.upsert("contracts", "0x1", {"address": "0x1", "name": "Token"})
        await data_manager.upsert("contracts", "0x1", {"address": "0x1", "abi": []}, merge=True)
        assert await data_manager.get("contracts", "0x1") == {"address": "0x1", "name": "Token", "abi": []}

        await data_manager.upsert("contracts", "0x1", {"address": "0x1"})
        assert await data_manager.get("contracts", "0x1") == {"address": "0x1"}

    @pytest.mark.asyncio
    async def test_records_are_copies(self, data_manager):
        record = {"number": 1, "transactions": []}
        await data_manager.upsert("blocks", "1", record)
        record["transactions"].append("0xaa")

        assert (await data_manager.get("blocks", "1"))["transactions"] == []

    @pytest.mark.asyncio
    async def test_list_records_ordering(self, data_manager):
        for number in (3, 1, 2):
            await data_manager.upsert("blocks", str(number), {"number": number})

        ascending = await data_manager.list_records("blocks", "number")
        descending = await data_manager.list_records("blocks", "number", direction="desc")

        assert [r["number"] for r in ascending] == [1, 2, 3]
        assert [r["number"] for r in descending] == [3, 2, 1]
        assert await data_manager.get_persisted_block_numbers() == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_blobs(self, data_manager):
        assert await data_manager.get_blob("0x1/artifact") is None
        await data_manager.store_blob("0x1/artifact", "{}")
        assert await data_manager.get_blob("0x1/artifact") == "{}"


class TestFactory:
    def test_memory(self):
        assert isinstance(get_data_manager("MEMORY", "test"), MemoryDataManager)

    def test_invalid_type(self):
        with pytest.raises(ValueError, match="Invalid storage type"):
            get_data_manager("bigquery", "test")
