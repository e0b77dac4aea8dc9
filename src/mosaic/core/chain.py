# src/mosaic/core/chain.py
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from mosaic.core.errors import ContractNotFound, InvalidArgument
from mosaic.core.models import BlockInfo, ContractRef, JsonDict, Receipt, TxOptions


# ======================================================================
# 1. ChainClient: capability consumed by the contract interacts
# ======================================================================

class ChainClient(ABC):
    """
    Abstract connection to one chain.

    The protocol core only ever talks to a chain through this interface:

        - call():             read-only contract method
        - send_transaction(): state-changing call, returns once mined
        - get_block():        block number + state root for anchoring
        - get_code():         deployed bytecode, used to confirm a
                              contract exists at an address

    Signing, nonce management for the sending account, gas estimation and
    retries on transient RPC failures all belong to the implementation.
    `Web3ChainClient` is the concrete implementation over web3.py;
    tests substitute an in-memory fake.
    """

    @abstractmethod
    async def call(self, contract: ContractRef, method: str, args: Sequence[Any] = ()) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def send_transaction(
        self,
        contract: ContractRef,
        method: str,
        args: Sequence[Any],
        tx_options: TxOptions,
    ) -> Receipt:
        raise NotImplementedError

    @abstractmethod
    async def get_block(self, tag: Union[str, int] = "latest") -> BlockInfo:
        raise NotImplementedError

    @abstractmethod
    async def get_code(self, address: str) -> str:
        raise NotImplementedError


# ======================================================================
# 2. ContractRegistry: contract name -> ABI/bytecode
# ======================================================================

class ContractArtifact(BaseModel):
    name: str
    abi: List[JsonDict] = Field(default_factory=list)
    bytecode: Optional[str] = None


class ContractRegistry:
    """
    Resolves contract names to their ABI/bytecode for one network.

    Contract interacts call resolve() at construction time; an unknown
    name raises ContractNotFound so a misconfigured handle fails before
    any transaction is attempted.
    """

    def __init__(self, network: str = "default") -> None:
        self.network = network
        self._artifacts: Dict[str, ContractArtifact] = {}

    def register(self, name: str, abi: List[JsonDict], bytecode: Optional[str] = None) -> None:
        self._artifacts[name] = ContractArtifact(name=name, abi=abi, bytecode=bytecode)

    def names(self) -> List[str]:
        return sorted(self._artifacts)

    def get(self, name: str) -> ContractArtifact:
        artifact = self._artifacts.get(name)
        if artifact is None:
            raise ContractNotFound(
                f"Contract '{name}' is not registered for network '{self.network}'."
            )
        return artifact

    def resolve(self, name: str, address: str) -> ContractRef:
        return ContractRef(name=name, address=address, abi=self.get(name).abi)

    @classmethod
    def from_directory(cls, path: Union[str, Path], network: str = "default") -> "ContractRegistry":
        """
        Load every ``<Name>.abi`` (and optional ``<Name>.bin``) file found
        in `path`.
        """
        registry = cls(network=network)
        directory = Path(path)
        for abi_file in sorted(directory.glob("*.abi")):
            bin_file = abi_file.with_suffix(".bin")
            bytecode = bin_file.read_text().strip() if bin_file.exists() else None
            registry.register(abi_file.stem, json.loads(abi_file.read_text()), bytecode)
        return registry


# ======================================================================
# 3. Chain / Mosaic: the two-chain composition
# ======================================================================

@dataclass(frozen=True)
class Chain:
    """
    One chain as seen by a facilitator: its client plus the addresses of
    the mosaic contracts deployed on it, keyed by contract name
    ("EIP20Gateway", "Anchor", ...). Both attributes are read-only.
    """

    client: ChainClient
    contract_addresses: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.client, ChainClient):
            raise InvalidArgument("client must be an instance of ChainClient.")
        object.__setattr__(
            self, "contract_addresses", MappingProxyType(dict(self.contract_addresses))
        )

    def address_of(self, contract_name: str) -> str:
        address = self.contract_addresses.get(contract_name)
        if address is None:
            raise InvalidArgument(f"Invalid {contract_name} address: {address}.")
        return address


@dataclass(frozen=True)
class Mosaic:
    """
    Pair of chains connected by a gateway/co-gateway pair.

    origin:    value chain (EIP20Gateway, Anchor of auxiliary roots)
    auxiliary: utility chain (EIP20CoGateway, Anchor of origin roots)

    The Mosaic owns both connections for the lifetime of the process.
    """

    origin: Chain
    auxiliary: Chain

    def __post_init__(self) -> None:
        if not isinstance(self.origin, Chain):
            raise InvalidArgument("origin must be an instance of Chain.")
        if not isinstance(self.auxiliary, Chain):
            raise InvalidArgument("auxiliary must be an instance of Chain.")
