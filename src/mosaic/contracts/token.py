# src/mosaic/contracts/token.py
from __future__ import annotations

from mosaic.contracts.base import ContractInteract
from mosaic.core.errors import InvalidArgument
from mosaic.core.models import ContractCall, Receipt
from mosaic.helper.validation import (
    TxOptionsLike,
    ensure_address,
    ensure_uint,
    parse_tx_options,
)


class EIP20Token(ContractInteract):
    """
    ERC20 token handle.

    Gateways use it for the allowance checks and approvals that must
    precede a stake (value token, base token for the bounty) or a redeem
    (utility token).
    """

    contract_name = "EIP20Token"

    async def balance_of(self, owner: str) -> str:
        ensure_address(owner, "owner address")
        return str(await self._call("balanceOf", owner))

    async def allowance(self, owner: str, spender: str) -> str:
        ensure_address(owner, "owner address")
        ensure_address(spender, "spender address")
        return str(await self._call("allowance", owner, spender))

    async def is_amount_approved(self, owner: str, spender: str, amount: str) -> bool:
        """True iff `spender` may transfer at least `amount` on behalf of `owner`."""
        ensure_address(owner, "owner address")
        ensure_address(spender, "spender address")
        required = int(ensure_uint(amount, "amount"))
        approved = int(await self.allowance(owner, spender))
        return approved >= required

    def approve_raw_tx(self, spender: str, amount: str) -> ContractCall:
        ensure_address(spender, "spender address")
        value = ensure_uint(amount, "amount")
        return self._raw_tx("approve", spender, value)

    async def approve(self, spender: str, amount: str, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, "Invalid from address: {}.")
        tx = self.approve_raw_tx(spender, amount)
        return await self._send(tx, options)


class OSTPrime(EIP20Token):
    """
    Base token of the auxiliary chain. Native value can be wrapped into
    the ERC20 form (and back), which is what a redeem of the base token
    needs before the co-gateway can pull it.
    """

    contract_name = "OSTPrime"

    def wrap_raw_tx(self) -> ContractCall:
        return self._raw_tx("wrap")

    async def wrap(self, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, "Invalid from address: {}.")
        if options.value is None or int(options.value) <= 0:
            raise InvalidArgument(f"Invalid wrap value: {options.value}.")
        return await self._send(self.wrap_raw_tx(), options)

    def unwrap_raw_tx(self, amount: str) -> ContractCall:
        value = ensure_uint(amount, "unwrap amount")
        return self._raw_tx("unwrap", value)

    async def unwrap(self, amount: str, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, "Invalid from address: {}.")
        return await self._send(self.unwrap_raw_tx(amount), options)

