from collections.abc import Mapping
from hexbytes import HexBytes
from typing import Any

from chain_mirror.utils import hex_to_str

# Document stores reject integers outside the signed 64-bit range
INT64_MAX = 2 ** 63 - 1
INT64_MIN = -(2 ** 63)


def sanitize(record: Mapping) -> dict:
    """Drop the fields whose value is None. Falsy values such as 0, False or "" are kept."""
    return {key: value for key, value in record.items() if value is not None}


def to_record(value: Any) -> Any:
    """Convert web3 response objects (AttributeDict, HexBytes, big ints) into plain storable values"""
    if isinstance(value, (HexBytes, bytes, bytearray)):
        return hex_to_str(HexBytes(value))
    if isinstance(value, Mapping):
        return {key: to_record(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_record(item) for item in value]
    if isinstance(value, int) and not isinstance(value, bool) and not INT64_MIN <= value <= INT64_MAX:
        return str(value)
    return value
