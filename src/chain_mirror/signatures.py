from eth_abi.exceptions import DecodingError
from loguru import logger
from typing import Any, Dict, List, Optional
from web3 import Web3
from web3.exceptions import Web3Exception

from chain_mirror.data_manager import BaseDataManager
from chain_mirror.data_types import CONTRACTS
from chain_mirror.errors import DecodeError


def render_signature(name: str, inputs: List[Dict[str, Any]]) -> str:
    """Render `name(type0 name0, type1 name1)` from an ABI function entry"""
    parameters = []
    for parameter in inputs:
        if parameter.get('name'):
            parameters.append(f"{parameter['type']} {parameter['name']}")
        else:
            parameters.append(parameter['type'])
    return f"{name}(" + ", ".join(parameters) + ")"


class SignatureResolver:
    def __init__(self, data_manager: BaseDataManager) -> None:
        self.data_manager = data_manager
        # Offline instance, only the ABI codec is used
        self.w3 = Web3()

    async def resolve(self, to_address: str, input_data: str, value: int | None = None) -> Optional[str]:
        """
        Decode the function called by a transaction from the target contract's stored ABI

        Args:
            to_address (str): Transaction target
            input_data (str): Hex encoded call data
            value (int | None): Value sent with the call

        Returns:
            Optional[str]: Rendered signature, None when the contract or its ABI is unknown

        Raises:
            DecodeError: The call data matches no function of the ABI
        """
        contract = await self.data_manager.get(CONTRACTS, to_address)
        if not contract or not contract.get('abi'):
            return None
        return self.decode(contract['abi'], input_data, value)

    def decode(self, abi: List[Dict[str, Any]], input_data: str, value: int | None = None) -> str:
        try:
            contract = self.w3.eth.contract(abi=abi)
            function, _ = contract.decode_function_input(input_data)
        except (ValueError, TypeError, KeyError, Web3Exception, DecodingError) as e:
            raise DecodeError(f"Could not decode call data: {str(e)}") from e

        function_abi = function.abi
        if value and function_abi.get('stateMutability') not in (None, 'payable'):
            logger.debug(f"Value sent to non payable function {function_abi['name']}")
        return render_signature(function_abi['name'], function_abi.get('inputs', []))

    async def resolve_or_none(self, to_address: str, input_data: str, value: int | None = None) -> Optional[str]:
        try:
            return await self.resolve(to_address, input_data, value)
        except DecodeError as e:
            logger.debug(f"No function signature for call to {to_address}: {str(e)}")
            return None
