# src/mosaic/core/errors.py
from __future__ import annotations

from typing import Any, Optional

from mosaic.core.enums import ErrorCode, MessageStatus


class MosaicError(Exception):
    """Root of every error raised by this library."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class InvalidArgument(MosaicError, ValueError):
    """Raised before any I/O when an input is malformed or missing."""

    default_code = ErrorCode.INVALID_ARGUMENT


class InvalidAmount(InvalidArgument):
    """Raised when a stake/redeem amount is not strictly positive."""

    default_code = ErrorCode.INVALID_AMOUNT


class ContractNotFound(MosaicError):
    """Raised when a contract interact cannot be bound to its contract."""

    default_code = ErrorCode.CONTRACT_NOT_FOUND


class TransactionReverted(MosaicError):
    """Raised when the chain rejects a submitted transaction."""

    default_code = ErrorCode.TRANSACTION_REVERTED

    def __init__(self, message: str, receipt: Any = None):
        super().__init__(message)
        self.receipt = receipt


class MessageNotProgressable(MosaicError):
    """Raised before submission when a message is not in DECLARED state."""

    default_code = ErrorCode.MESSAGE_NOT_PROGRESSABLE

    def __init__(
        self,
        message_hash: str,
        status: MessageStatus,
        message: str = "Message cannot be progressed.",
    ):
        super().__init__(message)
        self.message_hash = message_hash
        self.status = status


class AmountNotApproved(MosaicError):
    """Raised when a token allowance required by a declaration is missing."""

    default_code = ErrorCode.AMOUNT_NOT_APPROVED


class AnchorWaitTimeout(MosaicError):
    """Raised when a state root for the target height was not anchored in time."""

    default_code = ErrorCode.ANCHOR_WAIT_TIMEOUT

    def __init__(self, message: str, target_height: int, last_height: Optional[int]):
        super().__init__(message)
        self.target_height = target_height
        self.last_height = last_height


class AnchorWaitCancelled(MosaicError):
    """Raised when a caller aborts an anchor wait through its cancel event."""

    default_code = ErrorCode.ANCHOR_WAIT_CANCELLED


class StaleCommitment(MosaicError):
    """Raised when a state root is submitted for a non-increasing height."""

    default_code = ErrorCode.STALE_COMMITMENT


class EntropyUnavailable(MosaicError):
    """Raised when no secure random source can produce a secret."""

    default_code = ErrorCode.ENTROPY_UNAVAILABLE
