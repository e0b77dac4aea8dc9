# src/mosaic/contracts/gateway.py
from __future__ import annotations

import logging
from typing import Optional

from mosaic.contracts.base import CachedValue
from mosaic.contracts.message_box import MessageBox
from mosaic.contracts.token import EIP20Token
from mosaic.core.chain import ChainClient, ContractRegistry
from mosaic.core.models import ContractCall, Receipt
from mosaic.helper.validation import (
    TxOptionsLike,
    ensure_address,
    ensure_bytes32,
    ensure_hex,
    ensure_positive_amount,
    ensure_uint,
    parse_tx_options,
)

logger = logging.getLogger(__name__)

FACILITATOR_FROM_ERROR = "Invalid facilitator address: {}."
APPROVER_FROM_ERROR = "Invalid from address: {}."


class EIP20Gateway(MessageBox):
    """
    Origin-chain end of a gateway pair.

    Stake direction (outbox):
        stake -> progress_stake
    Redeem direction (inbox):
        confirm_redeem_intent -> progress_unstake

    The staker approves the value token for the stake amount, the
    facilitator approves the base token for the bounty. Both checks are
    exposed here; the facilitator enforces them before declaring.
    """

    contract_name = "EIP20Gateway"

    def __init__(
        self,
        client: ChainClient,
        address: str,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        super().__init__(client, address, registry)
        self._base_token: CachedValue[str] = CachedValue()
        self._value_token: CachedValue[str] = CachedValue()
        self._base_token_contract: CachedValue[EIP20Token] = CachedValue()
        self._value_token_contract: CachedValue[EIP20Token] = CachedValue()

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------
    async def get_base_token(self) -> str:
        """Address of the token the bounty is paid in."""

        async def load() -> str:
            return str(await self._call("baseToken"))

        return await self._base_token.get(load)

    async def get_value_token(self) -> str:
        """Address of the token that is staked."""

        async def load() -> str:
            return str(await self._call("token"))

        return await self._value_token.get(load)

    async def get_base_token_contract(self) -> EIP20Token:
        async def load() -> EIP20Token:
            return self._token(await self.get_base_token())

        return await self._base_token_contract.get(load)

    async def get_value_token_contract(self) -> EIP20Token:
        async def load() -> EIP20Token:
            return self._token(await self.get_value_token())

        return await self._value_token_contract.get(load)

    async def get_stake_vault(self) -> str:
        return str(await self._call("stakeVault"))

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------
    async def is_stake_amount_approved(self, staker_address: str, amount: str) -> bool:
        ensure_address(staker_address, "staker address")
        value = ensure_uint(amount, "stake amount")
        token = await self.get_value_token_contract()
        return await token.is_amount_approved(staker_address, self.address, value)

    async def is_bounty_amount_approved(self, facilitator_address: str) -> bool:
        """True iff `facilitator_address` allowed this gateway to pull the bounty."""
        ensure_address(facilitator_address, "facilitator address")
        token = await self.get_base_token_contract()
        bounty = await self.get_bounty()
        return await token.is_amount_approved(facilitator_address, self.address, bounty)

    async def approve_stake_amount(self, amount: str, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, APPROVER_FROM_ERROR)
        value = ensure_uint(amount, "stake amount")
        token = await self.get_value_token_contract()
        return await token.approve(self.address, value, options)

    async def approve_bounty_amount(self, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, APPROVER_FROM_ERROR)
        token = await self.get_base_token_contract()
        bounty = await self.get_bounty()
        return await token.approve(self.address, bounty, options)

    # ------------------------------------------------------------------
    # Stake (outbox)
    # ------------------------------------------------------------------
    def stake_raw_tx(
        self,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        nonce: str,
        hash_lock: str,
    ) -> ContractCall:
        value = ensure_positive_amount(amount, "Stake amount")
        ensure_address(beneficiary, "beneficiary address")
        price = ensure_uint(gas_price, "gas price")
        limit = ensure_uint(gas_limit, "gas limit")
        staker_nonce = ensure_uint(nonce, "nonce")
        ensure_bytes32(hash_lock, "hash lock")
        return self._raw_tx("stake", value, beneficiary, price, limit, staker_nonce, hash_lock)

    async def stake(
        self,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        nonce: str,
        hash_lock: str,
        tx_options: TxOptionsLike,
    ) -> Receipt:
        """
        Declare a stake intent. `tx_options.from` is the facilitator,
        which must have approved the bounty; the staker must have approved
        `amount` of the value token.
        """
        options = parse_tx_options(tx_options, FACILITATOR_FROM_ERROR)
        tx = self.stake_raw_tx(amount, beneficiary, gas_price, gas_limit, nonce, hash_lock)
        receipt = await self._send(tx, options)
        logger.info(
            "Stake intent declared: %s",
            receipt.event_arg("StakeIntentDeclared", "_messageHash"),
        )
        return receipt

    def progress_stake_raw_tx(self, message_hash: str, unlock_secret: str) -> ContractCall:
        self._progress_args(message_hash, unlock_secret)
        return self._raw_tx("progressStake", message_hash, unlock_secret)

    async def progress_stake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        tx = self.progress_stake_raw_tx(message_hash, unlock_secret)
        return await self._send(tx, options)

    # ------------------------------------------------------------------
    # Redeem (inbox)
    # ------------------------------------------------------------------
    def confirm_redeem_intent_raw_tx(
        self,
        redeemer: str,
        nonce: str,
        beneficiary: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        block_height: int,
        hash_lock: str,
        storage_proof: str,
    ) -> ContractCall:
        ensure_address(redeemer, "redeemer address")
        redeemer_nonce = ensure_uint(nonce, "nonce")
        ensure_address(beneficiary, "beneficiary address")
        value = ensure_uint(amount, "redeem amount")
        price = ensure_uint(gas_price, "gas price")
        limit = ensure_uint(gas_limit, "gas limit")
        height = ensure_uint(block_height, "block height")
        ensure_bytes32(hash_lock, "hash lock")
        ensure_hex(storage_proof, "storage proof data")
        return self._raw_tx(
            "confirmRedeemIntent",
            redeemer,
            redeemer_nonce,
            beneficiary,
            value,
            price,
            limit,
            int(height),
            hash_lock,
            storage_proof,
        )

    async def confirm_redeem_intent(
        self,
        redeemer: str,
        nonce: str,
        beneficiary: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        block_height: int,
        hash_lock: str,
        storage_proof: str,
        tx_options: TxOptionsLike,
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        tx = self.confirm_redeem_intent_raw_tx(
            redeemer,
            nonce,
            beneficiary,
            amount,
            gas_price,
            gas_limit,
            block_height,
            hash_lock,
            storage_proof,
        )
        return await self._send(tx, options)

    def progress_unstake_raw_tx(self, message_hash: str, unlock_secret: str) -> ContractCall:
        self._progress_args(message_hash, unlock_secret)
        return self._raw_tx("progressUnstake", message_hash, unlock_secret)

    async def progress_unstake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        tx = self.progress_unstake_raw_tx(message_hash, unlock_secret)
        return await self._send(tx, options)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------
    def activate_gateway_raw_tx(self, co_gateway_address: str) -> ContractCall:
        ensure_address(co_gateway_address, "coGateway address")
        return self._raw_tx("activateGateway", co_gateway_address)

    async def activate_gateway(
        self, co_gateway_address: str, tx_options: TxOptionsLike
    ) -> Receipt:
        options = parse_tx_options(tx_options, APPROVER_FROM_ERROR)
        return await self._send(self.activate_gateway_raw_tx(co_gateway_address), options)
