# src/mosaic/contracts/cogateway.py
from __future__ import annotations

import logging
from typing import Optional

from mosaic.contracts.base import CachedValue
from mosaic.contracts.message_box import MessageBox
from mosaic.contracts.token import EIP20Token
from mosaic.core.chain import ChainClient, ContractRegistry
from mosaic.core.errors import InvalidArgument
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

REDEEMER_FROM_ERROR = "Invalid redeemer address: {}."
APPROVER_FROM_ERROR = "Invalid from address: {}."


class EIP20CoGateway(MessageBox):
    """
    Auxiliary-chain end of a gateway pair.

    Stake direction (inbox):   confirm_stake_intent -> progress_mint
    Redeem direction (outbox): redeem -> progress_redeem

    Unlike a stake, a redeem pays the bounty in the auxiliary base coin,
    so redeem() requires `tx_options.value` instead of a token approval.
    """

    contract_name = "EIP20CoGateway"

    def __init__(
        self,
        client: ChainClient,
        address: str,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        super().__init__(client, address, registry)
        self._utility_token: CachedValue[str] = CachedValue()
        self._utility_token_contract: CachedValue[EIP20Token] = CachedValue()

    async def get_utility_token(self) -> str:
        async def load() -> str:
            return str(await self._call("utilityToken"))

        return await self._utility_token.get(load)

    async def get_utility_token_contract(self) -> EIP20Token:
        async def load() -> EIP20Token:
            return self._token(await self.get_utility_token())

        return await self._utility_token_contract.get(load)

    async def is_redeem_amount_approved(self, redeemer: str, amount: str) -> bool:
        ensure_address(redeemer, "redeemer address")
        value = ensure_uint(amount, "redeem amount")
        token = await self.get_utility_token_contract()
        return await token.is_amount_approved(redeemer, self.address, value)

    async def approve_redeem_amount(self, amount: str, tx_options: TxOptionsLike) -> Receipt:
        options = parse_tx_options(tx_options, APPROVER_FROM_ERROR)
        value = ensure_uint(amount, "redeem amount")
        token = await self.get_utility_token_contract()
        return await token.approve(self.address, value, options)

    # ------------------------------------------------------------------
    # Stake (inbox)
    # ------------------------------------------------------------------
    def confirm_stake_intent_raw_tx(
        self,
        staker: str,
        nonce: str,
        beneficiary: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        hash_lock: str,
        block_height: int,
        storage_proof: str,
    ) -> ContractCall:
        ensure_address(staker, "staker address")
        staker_nonce = ensure_uint(nonce, "nonce")
        ensure_address(beneficiary, "beneficiary address")
        value = ensure_uint(amount, "stake amount")
        price = ensure_uint(gas_price, "gas price")
        limit = ensure_uint(gas_limit, "gas limit")
        height = ensure_uint(block_height, "block height")
        ensure_bytes32(hash_lock, "hash lock")
        ensure_hex(storage_proof, "storage proof data")
        return self._raw_tx(
            "confirmStakeIntent",
            staker,
            staker_nonce,
            beneficiary,
            value,
            price,
            limit,
            hash_lock,
            int(height),
            storage_proof,
        )

    async def confirm_stake_intent(
        self,
        staker: str,
        nonce: str,
        beneficiary: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        hash_lock: str,
        block_height: int,
        storage_proof: str,
        tx_options: TxOptionsLike,
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        tx = self.confirm_stake_intent_raw_tx(
            staker,
            nonce,
            beneficiary,
            amount,
            gas_price,
            gas_limit,
            hash_lock,
            block_height,
            storage_proof,
        )
        return await self._send(tx, options)

    def progress_mint_raw_tx(self, message_hash: str, unlock_secret: str) -> ContractCall:
        self._progress_args(message_hash, unlock_secret)
        return self._raw_tx("progressMint", message_hash, unlock_secret)

    async def progress_mint(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        return await self._send(self.progress_mint_raw_tx(message_hash, unlock_secret), options)

    # ------------------------------------------------------------------
    # Redeem (outbox)
    # ------------------------------------------------------------------
    def redeem_raw_tx(
        self,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        nonce: str,
        hash_lock: str,
    ) -> ContractCall:
        value = ensure_positive_amount(amount, "Redeem amount")
        ensure_address(beneficiary, "beneficiary address")
        price = ensure_uint(gas_price, "gas price")
        limit = ensure_uint(gas_limit, "gas limit")
        redeemer_nonce = ensure_uint(nonce, "nonce")
        ensure_bytes32(hash_lock, "hash lock")
        return self._raw_tx("redeem", value, beneficiary, price, limit, redeemer_nonce, hash_lock)

    async def redeem(
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
        Declare a redeem intent. `tx_options.from` is the redeemer and
        `tx_options.value` must carry the bounty.
        """
        options = parse_tx_options(tx_options, REDEEMER_FROM_ERROR)
        if options.value is None:
            raise InvalidArgument(f"Invalid bounty value in transaction options: {options.value}.")
        tx = self.redeem_raw_tx(amount, beneficiary, gas_price, gas_limit, nonce, hash_lock)
        receipt = await self._send(tx, options)
        logger.info(
            "Redeem intent declared: %s",
            receipt.event_arg("RedeemIntentDeclared", "_messageHash"),
        )
        return receipt

    def progress_redeem_raw_tx(self, message_hash: str, unlock_secret: str) -> ContractCall:
        self._progress_args(message_hash, unlock_secret)
        return self._raw_tx("progressRedeem", message_hash, unlock_secret)

    async def progress_redeem(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Receipt:
        options = parse_tx_options(tx_options)
        return await self._send(self.progress_redeem_raw_tx(message_hash, unlock_secret), options)
