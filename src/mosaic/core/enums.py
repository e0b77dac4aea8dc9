# src/mosaic/core/enums.py
from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any


class MessageStatus(IntEnum):
    """
    Status of a cross-chain message as recorded in one message box
    (the outbox of the declaring chain or the inbox of the target chain).

    The integer values are the on-chain enum encoding used by the
    MessageBus library, so a raw value returned by a contract call maps
    directly onto a member.

        UNDECLARED -> DECLARED -> PROGRESSED
                          |
                          +-> DECLARED_REVOCATION -> REVOKED
    """

    UNDECLARED = 0
    DECLARED = 1
    PROGRESSED = 2
    DECLARED_REVOCATION = 3
    REVOKED = 4

    @classmethod
    def from_chain(cls, raw: Any) -> "MessageStatus":
        """
        Coerce a raw contract return value (int or numeric string) into
        a MessageStatus.
        """
        if isinstance(raw, MessageStatus):
            return raw
        return cls(int(raw))

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.PROGRESSED, MessageStatus.REVOKED)


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    CONTRACT_NOT_FOUND = "CONTRACT_NOT_FOUND"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    MESSAGE_NOT_PROGRESSABLE = "MESSAGE_NOT_PROGRESSABLE"
    AMOUNT_NOT_APPROVED = "AMOUNT_NOT_APPROVED"
    ANCHOR_WAIT_TIMEOUT = "ANCHOR_WAIT_TIMEOUT"
    ANCHOR_WAIT_CANCELLED = "ANCHOR_WAIT_CANCELLED"
    STALE_COMMITMENT = "STALE_COMMITMENT"
    ENTROPY_UNAVAILABLE = "ENTROPY_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
