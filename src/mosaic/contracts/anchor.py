# src/mosaic/contracts/anchor.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from mosaic.contracts.base import ContractInteract
from mosaic.core.errors import (
    AnchorWaitCancelled,
    AnchorWaitTimeout,
    InvalidArgument,
    StaleCommitment,
)
from mosaic.core.models import AnchorInfo, ContractCall, Receipt
from mosaic.helper.validation import (
    TxOptionsLike,
    ensure_bytes32,
    ensure_uint,
    parse_tx_options,
)

logger = logging.getLogger(__name__)


class Anchor(ContractInteract):
    """
    State-root provider living on one chain and holding committed state
    roots of the counter-chain.

    Cross-chain progression depends on it: a message declared in block B
    of chain X can only be confirmed on chain Y after Y's Anchor has
    committed a state root for a height >= B. wait_for_commit_at_least()
    is the one long-lived suspension point of a facilitation flow.
    """

    contract_name = "Anchor"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_latest_state_root_block_height(self) -> int:
        return int(await self._call("getLatestStateRootBlockHeight"))

    async def get_state_root(self, block_height: int) -> str:
        height = ensure_uint(block_height, "block height")
        return str(await self._call("getStateRoot", int(height)))

    async def get_latest_state_root(self) -> AnchorInfo:
        """Most recently committed state root together with its block height."""
        height = await self.get_latest_state_root_block_height()
        state_root = await self.get_state_root(height)
        return AnchorInfo(state_root=state_root, block_height=height)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def anchor_state_root_raw_tx(self, block_height: int, state_root: str) -> ContractCall:
        height = ensure_uint(block_height, "block height")
        ensure_bytes32(state_root, "state root")
        return self._raw_tx("anchorStateRoot", int(height), state_root)

    async def submit_state_root(
        self,
        block_height: int,
        state_root: str,
        tx_options: TxOptionsLike,
    ) -> Receipt:
        """
        Commit `state_root` for `block_height`.

        Raises StaleCommitment without sending anything when the height
        is not strictly above the latest committed height; the contract
        would reject such a commitment.
        """
        options = parse_tx_options(tx_options)
        tx = self.anchor_state_root_raw_tx(block_height, state_root)
        height = int(tx.args[0])

        latest = await self.get_latest_state_root_block_height()
        if height <= latest:
            raise StaleCommitment(
                f"Block height {height} must be greater than the latest "
                f"anchored block height {latest}."
            )
        receipt = await self._send(tx, options)
        logger.info("Anchored state root %s at block height %d", state_root, height)
        return receipt

    anchor_state_root = submit_state_root

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------
    async def wait_for_commit_at_least(
        self,
        target_block_height: int,
        poll_interval_ms: int,
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        """
        Poll until the committed height reaches `target_block_height`.

        Returns the committed height that satisfied the wait. Raises
        AnchorWaitTimeout once `timeout_ms` has elapsed and
        AnchorWaitCancelled as soon as `cancel_event` is set, including
        while a height read is still in flight. Both bounds are
        mandatory; there is no infinite wait.
        """
        target = int(ensure_uint(target_block_height, "target block height"))
        if not isinstance(poll_interval_ms, int) or poll_interval_ms <= 0:
            raise InvalidArgument(f"Invalid poll interval: {poll_interval_ms}.")
        if not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise InvalidArgument(f"Invalid timeout: {timeout_ms}.")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000.0
        interval = poll_interval_ms / 1000.0
        last_height: Optional[int] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise AnchorWaitCancelled(
                    f"Wait for state root at block height {target} was cancelled."
                )

            last_height = await self._read_height(
                deadline - loop.time(), cancel_event, target, timeout_ms, last_height
            )
            logger.debug(
                "Latest anchored block height is %d, waiting for %d", last_height, target
            )
            if last_height >= target:
                logger.info("State root for block height %d is anchored", target)
                return last_height

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise AnchorWaitTimeout(
                    f"State root for block height {target} was not anchored within "
                    f"{timeout_ms} ms (latest anchored: {last_height}).",
                    target_height=target,
                    last_height=last_height,
                )
            await _pause(min(interval, remaining), cancel_event)

    async def _read_height(
        self,
        remaining: float,
        cancel_event: Optional[asyncio.Event],
        target: int,
        timeout_ms: int,
        last_height: Optional[int],
    ) -> int:
        """One height read, bounded by the wait's deadline and its cancel event."""
        read = asyncio.ensure_future(self.get_latest_state_root_block_height())
        waiters = {read}
        cancelled = None
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancelled)
        try:
            done, pending = await asyncio.wait(
                waiters, timeout=max(remaining, 0), return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            for task in waiters:
                task.cancel()
            raise
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if read in done:
            return read.result()
        if cancelled is not None and cancelled in done:
            raise AnchorWaitCancelled(
                f"Wait for state root at block height {target} was cancelled."
            )
        raise AnchorWaitTimeout(
            f"State root for block height {target} was not anchored within "
            f"{timeout_ms} ms (anchor read did not complete).",
            target_height=target,
            last_height=last_height,
        )


async def _pause(seconds: float, cancel_event: Optional[asyncio.Event]) -> None:
    """Sleep for `seconds`, waking up early if `cancel_event` gets set."""
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass
