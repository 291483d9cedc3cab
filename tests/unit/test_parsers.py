"""
Unit tests for chain_mirror/parsers.

Tests verify:
- Only None-valued fields are stripped by sanitize
- web3 response objects become plain storable values
- Block records carry transaction hashes instead of full transactions
"""

from __future__ import annotations

from hexbytes import HexBytes
from web3.datastructures import AttributeDict

from chain_mirror.parsers import BlockParser, TransactionParser, sanitize, to_record

from conftest import make_block, make_transaction


class TestSanitize:
    def test_strips_only_none(self):
        assert sanitize({"a": 1, "b": None, "c": None, "d": 0}) == {"a": 1, "d": 0}

    def test_keeps_falsy_values(self):
        record = {"zero": 0, "false": False, "empty": "", "list": []}
        assert sanitize(record) == record

    def test_is_shallow(self):
        assert sanitize({"receipt": {"contractAddress": None}}) == {"receipt": {"contractAddress": None}}


class TestToRecord:
    def test_hexbytes_to_prefixed_hex(self):
        assert to_record(HexBytes("0xdeadbeef")) == "0xdeadbeef"

    def test_attribute_dict_to_dict(self):
        record = to_record(AttributeDict({"hash": HexBytes("0x01"), "logs": [AttributeDict({"data": HexBytes("0x02")})]}))
        assert record == {"hash": "0x01", "logs": [{"data": "0x02"}]}

    def test_large_integers_become_strings(self):
        assert to_record({"value": 10 ** 21, "gas": 21000}) == {"value": str(10 ** 21), "gas": 21000}

    def test_booleans_untouched(self):
        assert to_record({"removed": False}) == {"removed": False}


class TestBlockParser:
    def test_transactions_reduced_to_hashes(self):
        block = make_block(7, [make_transaction("0xaa"), make_transaction("0xbb")])
        record = BlockParser.parse_raw(block)

        assert record["transactions"] == ["0xaa", "0xbb"]
        assert "baseFeePerGas" not in record
        assert record["gasUsed"] == 0

    def test_hash_only_blocks(self):
        block = make_block(7, [HexBytes("0xaa")])
        assert BlockParser.parse_raw(block)["transactions"] == ["0xaa"]


class TestTransactionParser:
    def test_merge_receipt(self):
        transaction = TransactionParser.parse_raw(make_transaction("0xaa"))
        merged = TransactionParser.merge_receipt(transaction, {"status": 1, "logs": []}, 1700000001)

        assert merged["receipt"] == {"status": 1, "logs": []}
        assert merged["timestamp"] == 1700000001
        assert "chainId" not in merged

    def test_signature_needs_to_input_and_value(self):
        assert TransactionParser.needs_signature(make_transaction("0xaa"))
        assert not TransactionParser.needs_signature(make_transaction("0xaa", to=None))
        assert not TransactionParser.needs_signature({**make_transaction("0xaa"), "value": None})
