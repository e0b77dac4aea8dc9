# src/mosaic/contracts/web3_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.logs import DISCARD

from mosaic.core.chain import Chain, ChainClient, Mosaic
from mosaic.core.errors import InvalidArgument
from mosaic.core.models import BlockInfo, ContractRef, JsonDict, Receipt, TxOptions
from mosaic.core.settings import MosaicSettings, get_settings

logger = logging.getLogger(__name__)


def _normalise(value: Any) -> Any:
    """web3 return values -> plain JSON-ish values (bytes become 0x-hex)."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    if isinstance(value, dict) or hasattr(value, "items"):
        return {k: _normalise(v) for k, v in value.items()}
    return value


def _coerce(abi_type: str, value: Any) -> Any:
    """Decimal strings and 0x-hex strings -> the Python types web3 encodes."""
    if abi_type.endswith("]"):
        return [_coerce(abi_type[: abi_type.rindex("[")], v) for v in value]
    if not isinstance(value, str):
        return value
    if abi_type.startswith(("uint", "int")):
        return int(value, 16) if value.startswith("0x") else int(value)
    if abi_type == "address":
        return Web3.to_checksum_address(value)
    if abi_type.startswith("bytes"):
        return Web3.to_bytes(hexstr=value)
    return value


def encode_args(abi: Sequence[JsonDict], method: str, args: Sequence[Any]) -> List[Any]:
    """
    Convert `args` for `method` using the input types of its ABI entry.

    Amounts travel through the library as decimal strings; web3 only
    encodes Python ints for uint/int parameters.
    """
    for entry in abi:
        if (
            entry.get("type") == "function"
            and entry.get("name") == method
            and len(entry.get("inputs", [])) == len(args)
        ):
            return [_coerce(p["type"], a) for p, a in zip(entry["inputs"], args)]
    return list(args)


class Web3ChainClient(ChainClient):
    """
    ChainClient backed by web3.py's AsyncWeb3.

    Transactions are sent with eth_sendTransaction, so the `from` account
    must be unlocked on (or managed by) the node. Gas is estimated when
    the options do not carry one.
    """

    def __init__(self, w3: AsyncWeb3) -> None:
        self.w3 = w3

    @classmethod
    def from_url(cls, rpc_url: str) -> "Web3ChainClient":
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)))

    def _contract(self, contract: ContractRef):
        if not contract.abi:
            raise InvalidArgument(f"Missing ABI for contract {contract.name}.")
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(contract.address), abi=contract.abi
        )

    def _function(self, contract: ContractRef, method: str, args: Sequence[Any]):
        instance = self._contract(contract)
        encoded = encode_args(contract.abi, method, args)
        return instance, instance.get_function_by_name(method)(*encoded)

    async def call(self, contract: ContractRef, method: str, args: Sequence[Any] = ()) -> Any:
        _, fn = self._function(contract, method, args)
        return _normalise(await fn.call())

    async def send_transaction(
        self,
        contract: ContractRef,
        method: str,
        args: Sequence[Any],
        tx_options: TxOptions,
    ) -> Receipt:
        instance, fn = self._function(contract, method, args)

        tx: Dict[str, Any] = tx_options.to_transaction_dict()
        tx["from"] = Web3.to_checksum_address(tx["from"])
        if "gas" not in tx:
            tx["gas"] = await fn.estimate_gas(tx)
            logger.debug("Estimated %d gas for %s.%s", tx["gas"], contract.name, method)

        tx_hash = await fn.transact(tx)
        raw = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        return Receipt(
            transaction_hash=Web3.to_hex(raw["transactionHash"]),
            block_number=raw["blockNumber"],
            status=raw["status"] == 1,
            contract_address=raw.get("contractAddress"),
            events=self._decode_events(instance, raw),
        )

    @staticmethod
    def _decode_events(instance, raw_receipt) -> Dict[str, JsonDict]:
        events: Dict[str, JsonDict] = {}
        for entry in instance.abi:
            if entry.get("type") != "event":
                continue
            name = entry["name"]
            logs = instance.events[name]().process_receipt(raw_receipt, errors=DISCARD)
            if logs:
                events[name] = _normalise(dict(logs[0]["args"]))
        return events

    async def get_block(self, tag: Union[str, int] = "latest") -> BlockInfo:
        block = await self.w3.eth.get_block(tag)
        return BlockInfo(number=block["number"], state_root=Web3.to_hex(block["stateRoot"]))

    async def get_code(self, address: str) -> str:
        code = await self.w3.eth.get_code(Web3.to_checksum_address(address))
        return Web3.to_hex(code)


def build_mosaic(settings: Optional[MosaicSettings] = None) -> Mosaic:
    """Wire a Mosaic from configuration: one Web3ChainClient per chain."""
    settings = settings or get_settings()
    origin = Chain(
        client=Web3ChainClient.from_url(settings.origin_rpc_url),
        contract_addresses=settings.origin_contract_addresses(),
    )
    auxiliary = Chain(
        client=Web3ChainClient.from_url(settings.auxiliary_rpc_url),
        contract_addresses=settings.auxiliary_contract_addresses(),
    )
    logger.info(
        "Mosaic configured for %s (origin) and %s (auxiliary)",
        settings.origin_rpc_url,
        settings.auxiliary_rpc_url,
    )
    return Mosaic(origin=origin, auxiliary=auxiliary)
