# src/mosaic/workers/anchor_worker.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from mosaic.contracts.anchor import Anchor
from mosaic.core.chain import Chain, ContractRegistry, Mosaic
from mosaic.core.errors import InvalidArgument, MosaicError, StaleCommitment
from mosaic.core.models import Receipt, TxOptions
from mosaic.core.settings import MosaicSettings, get_settings
from mosaic.helper.validation import TxOptionsLike, parse_tx_options

logger = logging.getLogger(__name__)


class AnchorWorker:
    """
    Relays state roots between the two chains of a Mosaic.

    Each round reads the latest block of one chain and anchors its state
    root into the Anchor on the other chain, alternating sides:

        auxiliary block -> origin Anchor
        origin block    -> auxiliary Anchor

    with `interval_ms` of pause before every commit. Facilitators waiting
    in wait_for_commit_at_least() are released by these commits.

        worker = AnchorWorker(mosaic, {"from": a}, {"from": b})
        worker.start()
        ...
        await worker.stop()
    """

    def __init__(
        self,
        mosaic: Mosaic,
        tx_options_origin: TxOptionsLike,
        tx_options_auxiliary: TxOptionsLike,
        interval_ms: Optional[int] = None,
        settings: Optional[MosaicSettings] = None,
        registry: Optional[ContractRegistry] = None,
    ) -> None:
        if not isinstance(mosaic, Mosaic):
            raise InvalidArgument(f"Invalid mosaic object: {mosaic}.")
        settings = settings or get_settings()
        self.mosaic = mosaic
        self.interval_ms = settings.anchor_worker_interval_ms if interval_ms is None else interval_ms
        if not isinstance(self.interval_ms, int) or self.interval_ms <= 0:
            raise InvalidArgument(f"Invalid anchor interval: {interval_ms}.")
        self.tx_options_origin = _with_default_gas(parse_tx_options(tx_options_origin), settings)
        self.tx_options_auxiliary = _with_default_gas(
            parse_tx_options(tx_options_auxiliary), settings
        )
        self.origin_anchor = Anchor(mosaic.origin.client, mosaic.origin.address_of("Anchor"), registry)
        self.auxiliary_anchor = Anchor(
            mosaic.auxiliary.client, mosaic.auxiliary.address_of("Anchor"), registry
        )

        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def ensure_deployed(self) -> None:
        """Raise ContractNotFound unless both Anchor contracts are deployed."""
        await self.origin_anchor.ensure_deployed()
        await self.auxiliary_anchor.ensure_deployed()

    # ------------------------------------------------------------------
    # Single commits
    # ------------------------------------------------------------------
    async def anchor_origin(self) -> Optional[Receipt]:
        """Anchor the latest auxiliary state root on the origin chain."""
        return await self._commit(self.mosaic.auxiliary, self.origin_anchor, self.tx_options_origin, "origin")

    async def anchor_auxiliary(self) -> Optional[Receipt]:
        """Anchor the latest origin state root on the auxiliary chain."""
        return await self._commit(
            self.mosaic.origin, self.auxiliary_anchor, self.tx_options_auxiliary, "auxiliary"
        )

    @staticmethod
    async def _commit(
        source: Chain, anchor: Anchor, tx_options: TxOptions, target_name: str
    ) -> Optional[Receipt]:
        block = await source.client.get_block("latest")
        logger.info(
            "Anchoring state root %s for block number %d on %s chain",
            block.state_root,
            block.number,
            target_name,
        )
        try:
            return await anchor.anchor_state_root(block.number, block.state_root, tx_options)
        except StaleCommitment as exc:
            # No new block since the previous commit.
            logger.debug("Skipping commit on %s chain: %s", target_name, exc.message)
            return None

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    def start(self) -> asyncio.Task:
        if self.running:
            raise MosaicError("Anchor worker is already running.")
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Anchor worker started with an interval of %d ms", self.interval_ms)
        return self._task

    async def stop(self) -> None:
        """Signal the loop to finish and wait for it. Re-raises a loop failure."""
        self._stop.set()
        if self._task is not None:
            task, self._task = self._task, None
            await task
        logger.info("Anchor worker stopped")

    async def _run(self) -> None:
        commits = (self.anchor_origin, self.anchor_auxiliary)
        turn = 0
        while not await self._pause():
            try:
                await commits[turn % 2]()
            except MosaicError:
                logger.exception("Anchoring failed, retrying next round")
            turn += 1

    async def _pause(self) -> bool:
        """Sleep one interval. True when stop() was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval_ms / 1000.0)
        except asyncio.TimeoutError:
            return False
        return True


def _with_default_gas(options: TxOptions, settings: MosaicSettings) -> TxOptions:
    if options.gas is not None:
        return options
    return options.model_copy(update={"gas": settings.default_gas})
