# mosaic/__init__.py
from __future__ import annotations

from mosaic.contracts.anchor import Anchor
from mosaic.contracts.cogateway import EIP20CoGateway
from mosaic.contracts.gateway import EIP20Gateway
from mosaic.contracts.token import EIP20Token, OSTPrime
from mosaic.core.chain import Chain, ChainClient, ContractRegistry, Mosaic
from mosaic.core.enums import MessageStatus
from mosaic.core.errors import MosaicError
from mosaic.core.models import HashLock, Receipt, TxOptions
from mosaic.engine.facilitator import Facilitator, ProofProvider
from mosaic.helper.hashlock import HashLockGenerator, create_secret_hash_lock
from mosaic.workers.anchor_worker import AnchorWorker

__version__ = "0.1.0"

__all__ = [
    "Anchor",
    "AnchorWorker",
    "Chain",
    "ChainClient",
    "ContractRegistry",
    "EIP20CoGateway",
    "EIP20Gateway",
    "EIP20Token",
    "Facilitator",
    "HashLock",
    "HashLockGenerator",
    "MessageStatus",
    "Mosaic",
    "MosaicError",
    "OSTPrime",
    "ProofProvider",
    "Receipt",
    "TxOptions",
    "create_secret_hash_lock",
]
