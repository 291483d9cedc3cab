"""
Shared pytest configuration and fixtures for chain-mirror tests.

Provides an in-memory store, a workspace, a scripted chain client double and
helpers to lay out Truffle/Brownie artifact directories on disk.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from chain_mirror.data_manager import MemoryDataManager
from chain_mirror.data_types import Workspace

# ---------------------------------------------------------------------------
# Sample chain data
# ---------------------------------------------------------------------------

TOKEN_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
SENDER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RECIPIENT_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
NETWORK_ID = 1337

TRANSFER_ABI = [
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "burn",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "", "type": "uint256"}],
        "outputs": [],
    },
]

# transfer(address,uint256) selector
TRANSFER_SELECTOR = "a9059cbb"


def encode_transfer(to: str, amount: int) -> str:
    return (
        "0x"
        + TRANSFER_SELECTOR
        + to.lower().removeprefix("0x").rjust(64, "0")
        + hex(amount)[2:].rjust(64, "0")
    )


def make_transaction(tx_hash: str, to: str | None = TOKEN_ADDRESS, input_data: str = "0x", value: int = 0) -> dict:
    return {
        "hash": tx_hash,
        "from": SENDER_ADDRESS,
        "to": to,
        "input": input_data,
        "value": value,
        "nonce": 0,
        "gas": 21000,
        "blockNumber": 1,
        "chainId": None,
    }


def make_block(number: int, transactions: list | None = None, timestamp: int = 1700000000) -> dict:
    return {
        "number": number,
        "hash": f"0x{number:064x}",
        "timestamp": timestamp + number,
        "baseFeePerGas": None,
        "gasUsed": 0,
        "transactions": transactions or [],
    }


def make_receipt(tx_hash: str, contract_address: str | None = None) -> dict:
    return {
        "transactionHash": tx_hash,
        "status": 1,
        "logs": [],
        "contractAddress": contract_address,
    }


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def workspace() -> Workspace:
    return Workspace(name="test", rpc_server="ws://127.0.0.1:8545", network_id=NETWORK_ID)


@pytest.fixture
def data_manager() -> MemoryDataManager:
    return MemoryDataManager(workspace="test")


@pytest.fixture
def chain_client(workspace):
    """
    Chain client double serving blocks from `client.blocks` and receipts built on the fly.

    Usage in tests:
        def test_something(chain_client):
            chain_client.blocks[3] = make_block(3)
    """
    client = MagicMock()
    client.workspace = workspace
    client.blocks = {}

    async def get_block(block_identifier, full_transactions=True):
        return client.blocks[block_identifier]

    async def get_transaction_receipt(tx_hash):
        return make_receipt(tx_hash)

    client.get_block = AsyncMock(side_effect=get_block)
    client.get_transaction_receipt = AsyncMock(side_effect=get_transaction_receipt)
    client.get_block_number = AsyncMock(return_value=0)
    return client


# ---------------------------------------------------------------------------
# Artifact helpers
# ---------------------------------------------------------------------------


def artifact(name: str, symbols: list[str], address: str | None = None, abi: list | None = None) -> dict:
    data = {
        "contractName": name,
        "abi": abi if abi is not None else [],
        "ast": {"exportedSymbols": {symbol: [index] for index, symbol in enumerate(symbols)}},
        "source": f"contract {name} {{}}",
        "networks": {},
    }
    if address:
        data["networks"][str(NETWORK_ID)] = {"address": address}
    return data


def write_artifact(directory: Path, data: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{data['contractName']}.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def truffle_dir(tmp_path) -> Path:
    (tmp_path / "truffle-config.js").write_text("module.exports = {};")
    (tmp_path / "build" / "contracts").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def brownie_dir(tmp_path) -> Path:
    (tmp_path / "brownie-config.yaml").write_text("project_structure: {}\n")
    (tmp_path / "build" / "contracts").mkdir(parents=True)
    (tmp_path / "build" / "deployments").mkdir(parents=True)
    return tmp_path
