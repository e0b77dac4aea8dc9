# src/mosaic/core/models.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

JsonDict = Dict[str, Any]


# ======================================================================
# 1. Transaction plumbing
# ======================================================================

class TxOptions(BaseModel):
    """
    Options attached to a state-changing call.

    Only `from` is mandatory. Numeric fields are decimal strings so large
    token amounts never pass through floating point.

        - from:      sender account (checked by the contract interacts)
        - gas:       gas limit; estimated by the ChainClient when omitted
        - gasPrice:  gas price in wei
        - value:     native value attached to the call (bounty-bearing
                     calls such as CoGateway.redeem require it)
    """

    from_: Optional[str] = Field(
        default=None,
        alias="from",
        description="Account that signs and sends the transaction.",
    )
    gas: Optional[str] = Field(
        default=None,
        description="Gas limit as a decimal string. Estimated if omitted.",
    )
    gas_price: Optional[str] = Field(
        default=None,
        alias="gasPrice",
        description="Gas price as a decimal string.",
    )
    value: Optional[str] = Field(
        default=None,
        description="Native value to attach, as a decimal string.",
    )

    @field_validator("gas", "gas_price", "value", mode="before")
    @classmethod
    def _numbers_as_strings(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    class Config:
        populate_by_name = True
        frozen = True

    def with_value(self, value: str) -> "TxOptions":
        """Return a copy that carries `value`."""
        return self.model_copy(update={"value": str(value)})

    def to_transaction_dict(self) -> JsonDict:
        """
        Render the options in the key style expected by JSON-RPC clients.
        Absent fields are omitted so the client may fill them in.
        """
        tx: JsonDict = {"from": self.from_}
        if self.gas is not None:
            tx["gas"] = int(self.gas)
        if self.gas_price is not None:
            tx["gasPrice"] = int(self.gas_price)
        if self.value is not None:
            tx["value"] = int(self.value)
        return tx


class ContractRef(BaseModel):
    """
    Binding of a contract name (as known to the ContractRegistry) to a
    deployed address. The ABI is optional so lightweight ChainClients
    that dispatch on method names alone can ignore it.
    """

    name: str
    address: str
    abi: Optional[List[JsonDict]] = None


class ContractCall(BaseModel):
    """
    A validated, not-yet-sent contract invocation ("raw transaction").

    Produced by every `*_raw_tx` method; sending it is a separate step so
    callers can inspect, batch or sign it elsewhere.
    """

    contract: ContractRef
    method: str
    args: Tuple[Any, ...] = ()


class Receipt(BaseModel):
    """
    Mined transaction receipt as reported by a ChainClient.

    `events` maps an event name to its decoded arguments, e.g.

        {"StakeIntentDeclared": {"_messageHash": "0x...", ...}}
    """

    transaction_hash: str
    block_number: int
    status: bool = True
    contract_address: Optional[str] = None
    events: Dict[str, JsonDict] = Field(default_factory=dict)

    class Config:
        extra = "allow"

    def event_arg(self, event: str, arg: str) -> Any:
        """Return a decoded event argument, or None when the event is absent."""
        return self.events.get(event, {}).get(arg)


class BlockInfo(BaseModel):
    """The subset of a block header needed to anchor a state root."""

    number: int
    state_root: str


# ======================================================================
# 2. Protocol records
# ======================================================================

class HashLock(BaseModel):
    """
    Commit/reveal pair gating message progression.

        unlock_secret = keccak256(secret)
        hash_lock     = keccak256(unlock_secret)

    The hash lock is published when the intent is declared; the unlock
    secret is revealed only when the message is progressed.
    """

    secret: str = Field(..., description="Random secret the pair is derived from.")
    unlock_secret: str = Field(..., description="0x-prefixed keccak256(secret).")
    hash_lock: str = Field(..., description="0x-prefixed keccak256(unlock_secret).")

    class Config:
        frozen = True


class AnchorInfo(BaseModel):
    """
    Latest state root of one chain as committed in the Anchor contract
    that lives on the counter-chain.

    A proof against block B of chain X is only usable on chain Y once
    Y's Anchor reports block_height >= B.
    """

    state_root: str
    block_height: int


class GatewayProof(BaseModel):
    """
    Merkle-Patricia proof material for one gateway account at one block,
    as required by prove_gateway / confirm_*_intent.
    """

    block_height: int
    encoded_account: str
    account_proof: str
    storage_proof: str


class Message(BaseModel):
    """
    One directional value-transfer intent.

    The message hash is the identifier both message boxes use; the
    remaining fields are the declaration parameters the counter-chain
    needs to re-derive and confirm the intent.
    """

    message_hash: str
    sender: str
    nonce: str
    amount: str
    beneficiary: str
    gas_price: str
    gas_limit: str
    hash_lock: str


class StakeMessage(Message):
    """Stake intent declared on the origin gateway (sender is the staker)."""


class RedeemMessage(Message):
    """Redeem intent declared on the auxiliary co-gateway (sender is the redeemer)."""


class FacilitationResult(BaseModel):
    """
    Outcome of a full facilitation flow (declare, anchor wait, progress).

    `progress_receipt` is the progression on the declaring chain;
    `counter_progress_receipt` is the progression on the target chain,
    or None when that side was already progressed by someone else.
    """

    message_hash: str
    nonce: str
    hash_lock: HashLock
    declare_receipt: Receipt
    progress_receipt: Optional[Receipt] = None
    counter_progress_receipt: Optional[Receipt] = None
