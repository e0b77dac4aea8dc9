# src/mosaic/contracts/base.py
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from mosaic.core.chain import ChainClient, ContractRegistry
from mosaic.core.errors import ContractNotFound, InvalidArgument, TransactionReverted
from mosaic.core.models import ContractCall, Receipt, TxOptions
from mosaic.helper.validation import is_address

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CachedValue(Generic[T]):
    """
    Write-once memoization cell owned by a single contract handle.

    Used for contract-level constants (bounty, token addresses, state
    root provider) that cannot change after deployment. Two concurrent
    first reads may both hit the chain; they store the same value, so
    the race is harmless and no lock is taken.
    """

    __slots__ = ("_value", "_loaded")

    def __init__(self) -> None:
        self._value: Optional[T] = None
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def get(self, loader: Callable[[], Awaitable[T]]) -> T:
        if self._loaded:
            return self._value  # type: ignore[return-value]
        value = await loader()
        self._value = value
        self._loaded = True
        return value


class ContractInteract:
    """
    Base for every contract handle: binds a ChainClient to one deployed
    contract and routes reads and writes through it.

    Subclasses set `contract_name` (the key in the ContractRegistry) and
    expose typed operations. Write operations come in two flavours:

        - foo_raw_tx(...)       validates arguments, returns ContractCall
        - foo(..., tx_options)  validates tx_options, builds and sends

    Both validate every argument before any I/O.
    """

    contract_name: str = ""

    def __init__(
        self,
        client: ChainClient,
        address: str,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        if not isinstance(client, ChainClient):
            raise InvalidArgument("Mandatory Parameter 'client' is missing or invalid.")
        if not is_address(address):
            raise InvalidArgument(
                f"Mandatory Parameter 'address' is missing or invalid: {address}."
            )
        if registry is None:
            from mosaic.contracts.abi import default_registry

            registry = default_registry()

        self.client = client
        self.address = address
        self.registry = registry
        self.contract = registry.resolve(self.contract_name, address)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address!r})"

    async def ensure_deployed(self) -> None:
        """Raise ContractNotFound unless code is deployed at `address`."""
        code = await self.client.get_code(self.address)
        body = code[2:] if code and code.startswith("0x") else (code or "")
        if not body.strip("0"):
            raise ContractNotFound(
                f"Could not load {self.contract_name} contract for: {self.address}"
            )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _raw_tx(self, method: str, *args: Any) -> ContractCall:
        return ContractCall(contract=self.contract, method=method, args=tuple(args))

    async def _call(self, method: str, *args: Any) -> Any:
        return await self.client.call(self.contract, method, args)

    async def _send(self, tx: ContractCall, tx_options: TxOptions) -> Receipt:
        logger.debug(
            "Sending %s.%s from %s", self.contract_name, tx.method, tx_options.from_
        )
        receipt = await self.client.send_transaction(tx.contract, tx.method, tx.args, tx_options)
        if not receipt.status:
            raise TransactionReverted(
                f"Transaction {self.contract_name}.{tx.method} reverted: "
                f"{receipt.transaction_hash}.",
                receipt=receipt,
            )
        logger.info(
            "%s.%s mined in block %d (%s)",
            self.contract_name,
            tx.method,
            receipt.block_number,
            receipt.transaction_hash,
        )
        return receipt
