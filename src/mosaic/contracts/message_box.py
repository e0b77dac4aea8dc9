# src/mosaic/contracts/message_box.py
from __future__ import annotations

import logging
from typing import Optional

from mosaic.contracts.anchor import Anchor
from mosaic.contracts.base import CachedValue, ContractInteract
from mosaic.contracts.token import EIP20Token
from mosaic.core.chain import ChainClient, ContractRegistry
from mosaic.core.enums import MessageStatus
from mosaic.core.models import AnchorInfo, ContractCall, Receipt
from mosaic.helper.validation import (
    TxOptionsLike,
    ensure_address,
    ensure_bytes32,
    ensure_hex,
    ensure_uint,
    parse_tx_options,
)

logger = logging.getLogger(__name__)


class MessageBox(ContractInteract):
    """
    Behaviour shared by both ends of a gateway pair.

    EIP20Gateway and EIP20CoGateway each keep an outbox (messages they
    declared) and an inbox (messages confirmed from the counter-chain),
    a bounty, a per-account nonce, and a state root provider (the Anchor
    holding the counter-chain's state roots). All of that lives here so
    the stake and redeem sides only add their own direction.

    Message statuses are never cached: they change over time and must
    reflect current on-chain state. Contract constants (bounty, anchor
    address) are cached once per handle.
    """

    def __init__(
        self,
        client: ChainClient,
        address: str,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        super().__init__(client, address, registry)
        self._bounty: CachedValue[str] = CachedValue()
        self._state_root_provider: CachedValue[str] = CachedValue()
        self._anchor: CachedValue[Anchor] = CachedValue()

    # ------------------------------------------------------------------
    # Constants
    # ------------------------------------------------------------------
    async def get_bounty(self) -> str:
        async def load() -> str:
            return str(await self._call("bounty"))

        return await self._bounty.get(load)

    async def get_state_root_provider_address(self) -> str:
        async def load() -> str:
            return str(await self._call("stateRootProvider"))

        return await self._state_root_provider.get(load)

    async def get_anchor(self) -> Anchor:
        async def load() -> Anchor:
            address = await self.get_state_root_provider_address()
            return Anchor(self.client, address, self.registry)

        return await self._anchor.get(load)

    async def get_latest_anchor_info(self) -> AnchorInfo:
        """Latest counter-chain state root known to this gateway's Anchor."""
        anchor = await self.get_anchor()
        return await anchor.get_latest_state_root()

    def _token(self, address: str) -> EIP20Token:
        return EIP20Token(self.client, address, self.registry)

    # ------------------------------------------------------------------
    # Per-account and per-message reads
    # ------------------------------------------------------------------
    async def get_nonce(self, account_address: str) -> str:
        """Nonce to use for the next message declared by `account_address`."""
        ensure_address(account_address, "account address")
        return str(await self._call("getNonce", account_address))

    async def get_inbox_message_status(self, message_hash: str) -> MessageStatus:
        ensure_bytes32(message_hash, "message hash")
        raw = await self._call("getInboxMessageStatus", message_hash)
        return MessageStatus.from_chain(raw)

    async def get_outbox_message_status(self, message_hash: str) -> MessageStatus:
        ensure_bytes32(message_hash, "message hash")
        raw = await self._call("getOutboxMessageStatus", message_hash)
        return MessageStatus.from_chain(raw)

    # ------------------------------------------------------------------
    # Gateway proof
    # ------------------------------------------------------------------
    def prove_gateway_raw_tx(
        self, block_height: int, encoded_account: str, account_proof: str
    ) -> ContractCall:
        height = ensure_uint(block_height, "block height")
        ensure_hex(encoded_account, "account data")
        ensure_hex(account_proof, "account proof")
        return self._raw_tx("proveGateway", int(height), encoded_account, account_proof)

    async def prove_gateway(
        self,
        block_height: int,
        encoded_account: str,
        account_proof: str,
        tx_options: TxOptionsLike,
    ) -> Receipt:
        """
        Prove the storage root of the counter-chain gateway account at
        `block_height`. The height must already be anchored.
        """
        options = parse_tx_options(tx_options)
        tx = self.prove_gateway_raw_tx(block_height, encoded_account, account_proof)
        return await self._send(tx, options)

    # ------------------------------------------------------------------
    # Shared argument checks
    # ------------------------------------------------------------------
    @staticmethod
    def _progress_args(message_hash: str, unlock_secret: str) -> None:
        ensure_bytes32(message_hash, "message hash")
        ensure_hex(unlock_secret, "unlock secret")
