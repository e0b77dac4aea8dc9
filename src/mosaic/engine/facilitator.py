# src/mosaic/engine/facilitator.py
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Tuple

from mosaic.contracts.anchor import Anchor
from mosaic.contracts.cogateway import EIP20CoGateway
from mosaic.contracts.gateway import EIP20Gateway
from mosaic.contracts.message_box import MessageBox
from mosaic.contracts.token import OSTPrime
from mosaic.core.chain import ChainClient, ContractRegistry, Mosaic
from mosaic.core.enums import MessageStatus
from mosaic.core.errors import (
    AmountNotApproved,
    InvalidArgument,
    MessageNotProgressable,
    MosaicError,
)
from mosaic.core.models import FacilitationResult, GatewayProof, HashLock, Receipt, TxOptions
from mosaic.core.settings import MosaicSettings, get_settings
from mosaic.helper.hashlock import HashLockGenerator
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


# ======================================================================
# 1. Proof capability
# ======================================================================

class ProofProvider(ABC):
    """
    Source of Merkle-Patricia proofs for a gateway's outbox.

    Given the chain a message was declared on, the declaring gateway and
    the message hash, return the account proof of the gateway and the
    storage proof of the outbox slot at `block_height`. The height is
    always one that is already anchored on the counter-chain.
    """

    @abstractmethod
    async def get_outbox_proof(
        self,
        client: ChainClient,
        gateway_address: str,
        message_hash: str,
        block_height: int,
    ) -> GatewayProof:
        raise NotImplementedError


# ======================================================================
# 2. Facilitator
# ======================================================================

class Facilitator:
    """
    High-level driver of stake and redeem messages across a Mosaic.

    -------------------------------------------------------------------------
    Stake (origin -> auxiliary)
    -------------------------------------------------------------------------

        stake                  EIP20Gateway.stake               (origin)
        wait                   auxiliary Anchor >= declare block
        progress_stake         EIP20CoGateway.prove_gateway     (auxiliary)
                               EIP20CoGateway.confirm_stake_intent
                               EIP20Gateway.progress_stake      (origin)
                               EIP20CoGateway.progress_mint     (auxiliary)

    -------------------------------------------------------------------------
    Redeem (auxiliary -> origin)
    -------------------------------------------------------------------------

        redeem                 EIP20CoGateway.redeem            (auxiliary)
        wait                   origin Anchor >= declare block
        progress_redeem        EIP20Gateway.prove_gateway       (origin)
                               EIP20Gateway.confirm_redeem_intent
                               EIP20CoGateway.progress_redeem   (auxiliary)
                               EIP20Gateway.progress_unstake    (origin)

    Every step is a plain awaited call; a failing step raises and the
    remaining steps are not attempted. Each public operation validates
    all of its arguments before the first network call.

    The stake bounty is an ERC20 approval of the base token while the
    redeem bounty travels as transaction value. The facilitator checks
    approvals but never grants them: callers use the approve_* methods of
    the gateways when AmountNotApproved is raised.
    """

    def __init__(
        self,
        mosaic: Mosaic,
        proof_provider: Optional[ProofProvider] = None,
        hash_lock_generator: Optional[HashLockGenerator] = None,
        settings: Optional[MosaicSettings] = None,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        if not isinstance(mosaic, Mosaic):
            raise InvalidArgument(f"Invalid mosaic object: {mosaic}.")
        self.mosaic = mosaic
        self.proof_provider = proof_provider
        self.hash_lock_generator = hash_lock_generator or HashLockGenerator()
        self.settings = settings or get_settings()
        self.registry = registry

        self.gateway = EIP20Gateway(
            mosaic.origin.client, mosaic.origin.address_of("EIP20Gateway"), registry
        )
        self.co_gateway = EIP20CoGateway(
            mosaic.auxiliary.client, mosaic.auxiliary.address_of("EIP20CoGateway"), registry
        )

    def get_hash_lock(self) -> HashLock:
        """Fresh secret, unlock secret and hash lock for one message."""
        return self.hash_lock_generator.generate()

    async def ensure_deployed(self) -> None:
        """
        Raise ContractNotFound unless code is deployed at both gateway
        addresses. Construction does no I/O, so callers run this once
        before the first flow when addresses come from configuration.
        """
        await self.gateway.ensure_deployed()
        await self.co_gateway.ensure_deployed()

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------
    async def stake(
        self,
        staker: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        hash_lock: str,
        tx_options: TxOptionsLike,
        nonce: Optional[str] = None,
    ) -> Receipt:
        """
        Declare a stake intent on the origin gateway.

        `tx_options.from` is the facilitator paying the bounty. Both the
        bounty and the stake amount must already be approved for the
        gateway, otherwise AmountNotApproved is raised and nothing is
        sent. The staker's current nonce is read when `nonce` is None.
        """
        ensure_address(staker, "staker address")
        value = ensure_positive_amount(amount, "Stake amount")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        ensure_bytes32(hash_lock, "hash lock")
        options = parse_tx_options(tx_options, "Invalid facilitator address: {}.")
        if nonce is not None:
            ensure_uint(nonce, "nonce")

        if not await self.gateway.is_bounty_amount_approved(options.from_):
            raise AmountNotApproved(
                f"Bounty amount is not approved for facilitator {options.from_}."
            )
        if not await self.gateway.is_stake_amount_approved(staker, value):
            raise AmountNotApproved(
                f"Stake amount {value} is not approved for staker {staker}."
            )
        if nonce is None:
            nonce = await self.gateway.get_nonce(staker)

        return await self.gateway.stake(
            value, beneficiary, gas_price, gas_limit, nonce, hash_lock, options
        )

    async def redeem(
        self,
        redeemer: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        hash_lock: str,
        tx_options: TxOptionsLike,
        nonce: Optional[str] = None,
    ) -> Receipt:
        """
        Declare a redeem intent on the auxiliary co-gateway.

        The bounty is read from the co-gateway and attached as the
        transaction value; any `value` in `tx_options` is replaced.
        """
        ensure_address(redeemer, "redeemer address")
        value = ensure_positive_amount(amount, "Redeem amount")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        ensure_bytes32(hash_lock, "hash lock")
        options = parse_tx_options(tx_options, "Invalid redeemer address: {}.")
        if nonce is not None:
            ensure_uint(nonce, "nonce")

        if not await self.co_gateway.is_redeem_amount_approved(redeemer, value):
            raise AmountNotApproved(
                f"Redeem amount {value} is not approved for redeemer {redeemer}."
            )
        if nonce is None:
            nonce = await self.co_gateway.get_nonce(redeemer)
        bounty = await self.co_gateway.get_bounty()

        return await self.co_gateway.redeem(
            value,
            beneficiary,
            gas_price,
            gas_limit,
            nonce,
            hash_lock,
            options.with_value(bounty),
        )

    # ------------------------------------------------------------------
    # Confirmation + progression
    # ------------------------------------------------------------------
    async def progress_stake(
        self,
        message_hash: str,
        staker: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        nonce: str,
        hash_lock: str,
        unlock_secret: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
    ) -> Tuple[Optional[Receipt], Optional[Receipt]]:
        """
        Confirm a declared stake on the auxiliary chain and progress it
        on both chains.

        Returns the (progress_stake, progress_mint) receipts; an entry is
        None when that side had already been progressed.
        """
        ensure_bytes32(message_hash, "message hash")
        ensure_address(staker, "staker address")
        ensure_uint(amount, "stake amount")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        ensure_uint(nonce, "nonce")
        ensure_bytes32(hash_lock, "hash lock")
        ensure_hex(unlock_secret, "unlock secret")
        origin_options = parse_tx_options(tx_options_origin)
        auxiliary_options = parse_tx_options(tx_options_auxiliary)

        if await self.co_gateway.get_inbox_message_status(message_hash) == MessageStatus.UNDECLARED:
            height, proof = await self._prove(
                self.co_gateway, self.mosaic.origin.client, self.gateway, message_hash, auxiliary_options
            )
            await self.co_gateway.confirm_stake_intent(
                staker,
                nonce,
                beneficiary,
                amount,
                gas_price,
                gas_limit,
                hash_lock,
                height,
                proof.storage_proof,
                auxiliary_options,
            )
            logger.info("Stake intent %s confirmed at block height %d", message_hash, height)

        stake_receipt = await self._progress_stake(message_hash, unlock_secret, origin_options)
        mint_receipt = await self._progress_mint(message_hash, unlock_secret, auxiliary_options)
        return stake_receipt, mint_receipt

    async def progress_redeem(
        self,
        message_hash: str,
        redeemer: str,
        nonce: str,
        beneficiary: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        hash_lock: str,
        unlock_secret: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
    ) -> Tuple[Optional[Receipt], Optional[Receipt]]:
        """
        Confirm a declared redeem on the origin chain and progress it on
        both chains. Returns the (progress_redeem, progress_unstake)
        receipts.
        """
        ensure_bytes32(message_hash, "message hash")
        ensure_address(redeemer, "redeemer address")
        ensure_uint(nonce, "nonce")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(amount, "redeem amount")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        ensure_bytes32(hash_lock, "hash lock")
        ensure_hex(unlock_secret, "unlock secret")
        origin_options = parse_tx_options(tx_options_origin)
        auxiliary_options = parse_tx_options(tx_options_auxiliary)

        if await self.gateway.get_inbox_message_status(message_hash) == MessageStatus.UNDECLARED:
            height, proof = await self._prove(
                self.gateway, self.mosaic.auxiliary.client, self.co_gateway, message_hash, origin_options
            )
            await self.gateway.confirm_redeem_intent(
                redeemer,
                nonce,
                beneficiary,
                amount,
                gas_price,
                gas_limit,
                height,
                hash_lock,
                proof.storage_proof,
                origin_options,
            )
            logger.info("Redeem intent %s confirmed at block height %d", message_hash, height)

        redeem_receipt = await self._progress_redeem(message_hash, unlock_secret, auxiliary_options)
        unstake_receipt = await self._progress_unstake(message_hash, unlock_secret, origin_options)
        return redeem_receipt, unstake_receipt

    async def _prove(
        self,
        target: MessageBox,
        source_client: ChainClient,
        source: MessageBox,
        message_hash: str,
        tx_options: TxOptions,
    ) -> Tuple[int, GatewayProof]:
        """
        Prove `source` on `target` at the latest height anchored on the
        target chain and return that height with the proof used.
        """
        if self.proof_provider is None:
            raise InvalidArgument(f"Invalid proof provider: {self.proof_provider}.")
        anchor_info = await target.get_latest_anchor_info()
        height = anchor_info.block_height
        proof = await self.proof_provider.get_outbox_proof(
            source_client, source.address, message_hash, height
        )
        await target.prove_gateway(height, proof.encoded_account, proof.account_proof, tx_options)
        logger.info("%s proven on %s at block height %d", source, target, height)
        return height, proof

    # ------------------------------------------------------------------
    # Status-checked progression
    # ------------------------------------------------------------------
    async def perform_progress_stake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> bool:
        """Progress a stake on the origin gateway; see _progress_checked."""
        receipt = await self._progress_stake(message_hash, unlock_secret, tx_options)
        return receipt is None or receipt.status

    async def perform_progress_mint(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> bool:
        receipt = await self._progress_mint(message_hash, unlock_secret, tx_options)
        return receipt is None or receipt.status

    async def perform_progress_redeem(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> bool:
        """
        Progress a redeem on the auxiliary co-gateway.

        The co-gateway outbox status is read first: DECLARED sends
        progressRedeem, PROGRESSED returns True without sending, any
        other status raises MessageNotProgressable.
        """
        receipt = await self._progress_redeem(message_hash, unlock_secret, tx_options)
        return receipt is None or receipt.status

    async def perform_progress_unstake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> bool:
        receipt = await self._progress_unstake(message_hash, unlock_secret, tx_options)
        return receipt is None or receipt.status

    async def _progress_stake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Optional[Receipt]:
        options = self._progress_args(message_hash, unlock_secret, tx_options)
        status = await self.gateway.get_outbox_message_status(message_hash)
        return await self._progress_checked(
            message_hash, status, lambda: self.gateway.progress_stake(message_hash, unlock_secret, options)
        )

    async def _progress_mint(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Optional[Receipt]:
        options = self._progress_args(message_hash, unlock_secret, tx_options)
        status = await self.co_gateway.get_inbox_message_status(message_hash)
        return await self._progress_checked(
            message_hash, status, lambda: self.co_gateway.progress_mint(message_hash, unlock_secret, options)
        )

    async def _progress_redeem(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Optional[Receipt]:
        options = self._progress_args(message_hash, unlock_secret, tx_options)
        status = await self.co_gateway.get_outbox_message_status(message_hash)
        return await self._progress_checked(
            message_hash, status, lambda: self.co_gateway.progress_redeem(message_hash, unlock_secret, options)
        )

    async def _progress_unstake(
        self, message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> Optional[Receipt]:
        options = self._progress_args(message_hash, unlock_secret, tx_options)
        status = await self.gateway.get_inbox_message_status(message_hash)
        return await self._progress_checked(
            message_hash, status, lambda: self.gateway.progress_unstake(message_hash, unlock_secret, options)
        )

    @staticmethod
    def _progress_args(
        message_hash: str, unlock_secret: str, tx_options: TxOptionsLike
    ) -> TxOptions:
        ensure_bytes32(message_hash, "message hash")
        ensure_hex(unlock_secret, "unlock secret")
        return parse_tx_options(tx_options)

    @staticmethod
    async def _progress_checked(
        message_hash: str,
        status: MessageStatus,
        send: Callable[[], Awaitable[Receipt]],
    ) -> Optional[Receipt]:
        if status == MessageStatus.DECLARED:
            receipt = await send()
            logger.info("Message %s progressed", message_hash)
            return receipt
        if status == MessageStatus.PROGRESSED:
            logger.warning("Message %s is already progressed", message_hash)
            return None
        raise MessageNotProgressable(message_hash, status)

    # ------------------------------------------------------------------
    # Full flows
    # ------------------------------------------------------------------
    async def wait_for_state_root_commit(
        self,
        anchor: Anchor,
        block_number: int,
        cancel_event: Optional[asyncio.Event] = None,
        poll_interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> int:
        """Wait until `anchor` holds a state root at or above `block_number`."""
        if poll_interval_ms is None:
            poll_interval_ms = self.settings.anchor_poll_interval_ms
        if timeout_ms is None:
            timeout_ms = self.settings.anchor_wait_timeout_ms
        logger.info("Waiting for state root commit of block %d on %s", block_number, anchor)
        return await anchor.wait_for_commit_at_least(
            block_number, poll_interval_ms, timeout_ms, cancel_event
        )

    async def perform_stake(
        self,
        staker: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FacilitationResult:
        """
        Stake end to end: nonce, hash lock, declare, anchor wait,
        confirm and progress on both chains.
        """
        ensure_address(staker, "staker address")
        ensure_positive_amount(amount, "Stake amount")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        parse_tx_options(tx_options_origin, "Invalid facilitator address: {}.")
        parse_tx_options(tx_options_auxiliary)

        nonce = await self.gateway.get_nonce(staker)
        hash_lock = self.get_hash_lock()
        declare_receipt = await self.stake(
            staker, amount, beneficiary, gas_price, gas_limit,
            hash_lock.hash_lock, tx_options_origin, nonce=nonce,
        )
        message_hash = _declared_message_hash(declare_receipt, "StakeIntentDeclared")

        anchor = await self.co_gateway.get_anchor()
        await self.wait_for_state_root_commit(anchor, declare_receipt.block_number, cancel_event)

        progress_receipt, mint_receipt = await self.progress_stake(
            message_hash, staker, amount, beneficiary, gas_price, gas_limit, nonce,
            hash_lock.hash_lock, hash_lock.unlock_secret,
            tx_options_origin, tx_options_auxiliary,
        )
        return FacilitationResult(
            message_hash=message_hash,
            nonce=nonce,
            hash_lock=hash_lock,
            declare_receipt=declare_receipt,
            progress_receipt=progress_receipt,
            counter_progress_receipt=mint_receipt,
        )

    async def perform_redeem(
        self,
        redeemer: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FacilitationResult:
        """Redeem end to end; the mirror image of perform_stake."""
        self._redeem_flow_args(
            redeemer, amount, beneficiary, gas_price, gas_limit,
            tx_options_origin, tx_options_auxiliary,
        )

        nonce = await self.co_gateway.get_nonce(redeemer)
        hash_lock = self.get_hash_lock()
        declare_receipt = await self.redeem(
            redeemer, amount, beneficiary, gas_price, gas_limit,
            hash_lock.hash_lock, tx_options_auxiliary, nonce=nonce,
        )
        message_hash = _declared_message_hash(declare_receipt, "RedeemIntentDeclared")

        anchor = await self.gateway.get_anchor()
        await self.wait_for_state_root_commit(anchor, declare_receipt.block_number, cancel_event)

        redeem_receipt, unstake_receipt = await self.progress_redeem(
            message_hash, redeemer, nonce, beneficiary, amount, gas_price, gas_limit,
            hash_lock.hash_lock, hash_lock.unlock_secret,
            tx_options_origin, tx_options_auxiliary,
        )
        return FacilitationResult(
            message_hash=message_hash,
            nonce=nonce,
            hash_lock=hash_lock,
            declare_receipt=declare_receipt,
            progress_receipt=redeem_receipt,
            counter_progress_receipt=unstake_receipt,
        )

    async def perform_redeem_ost_prime(
        self,
        redeemer: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FacilitationResult:
        """
        Wrap `amount` of the native auxiliary coin into OSTPrime, then
        redeem it. The redeemer must have approved the co-gateway for
        `amount` of OSTPrime beforehand.
        """
        value, options = self._redeem_flow_args(
            redeemer, amount, beneficiary, gas_price, gas_limit,
            tx_options_origin, tx_options_auxiliary,
        )
        ost_prime = OSTPrime(
            self.mosaic.auxiliary.client,
            self.mosaic.auxiliary.address_of("OSTPrime"),
            self.registry,
        )
        await ost_prime.wrap(options.with_value(value))
        return await self.perform_redeem(
            redeemer, value, beneficiary, gas_price, gas_limit,
            tx_options_origin, options, cancel_event,
        )

    @staticmethod
    def _redeem_flow_args(
        redeemer: str,
        amount: str,
        beneficiary: str,
        gas_price: str,
        gas_limit: str,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
    ) -> Tuple[str, TxOptions]:
        ensure_address(redeemer, "redeemer address")
        value = ensure_positive_amount(amount, "Redeem amount")
        ensure_address(beneficiary, "beneficiary address")
        ensure_uint(gas_price, "gas price")
        ensure_uint(gas_limit, "gas limit")
        parse_tx_options(tx_options_origin)
        options = parse_tx_options(tx_options_auxiliary, "Invalid redeemer address: {}.")
        return value, options


def _declared_message_hash(receipt: Receipt, event: str) -> str:
    message_hash = receipt.event_arg(event, "_messageHash")
    if message_hash is None:
        raise MosaicError(
            f"Receipt {receipt.transaction_hash} does not contain a {event} event."
        )
    return message_hash
