# src/mosaic/helper/validation.py
"""
Client-side argument checks shared by the contract interacts and the
facilitator.

Every check raises InvalidArgument (or InvalidAmount) whose message names
the offending field and echoes the value, e.g.

    Invalid beneficiary address: 0x123.

All checks are purely syntactic and never touch the network. Semantic
validity (zero address beneficiary, stale nonce, ...) is left to the
contracts and surfaces as TransactionReverted.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from eth_utils import is_address as _eth_is_address
from pydantic import ValidationError

from mosaic.core.errors import InvalidAmount, InvalidArgument
from mosaic.core.models import TxOptions

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
_BYTES32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

TxOptionsLike = Union[TxOptions, Mapping[str, Any]]


def is_address(value: Any) -> bool:
    """
    True iff `value` is a 20-byte hex account address. Mixed-case input
    must carry a valid EIP-55 checksum.
    """
    return isinstance(value, str) and _eth_is_address(value)


def is_hex(value: Any) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.match(value))


def is_bytes32(value: Any) -> bool:
    return isinstance(value, str) and bool(_BYTES32_RE.match(value))


def ensure_address(value: Any, label: str) -> str:
    if not is_address(value):
        raise InvalidArgument(f"Invalid {label}: {value}.")
    return value


def ensure_bytes32(value: Any, label: str) -> str:
    if not is_bytes32(value):
        raise InvalidArgument(f"Invalid {label}: {value}.")
    return value


def ensure_hex(value: Any, label: str) -> str:
    if not is_hex(value):
        raise InvalidArgument(f"Invalid {label}: {value}.")
    return value


def ensure_uint(value: Any, label: str) -> str:
    """
    Normalise an unsigned integer given as int or decimal string into its
    canonical decimal string.

    Floats and booleans are rejected outright; precision must never
    depend on a binary float.
    """
    if isinstance(value, bool) or value is None or isinstance(value, float):
        raise InvalidArgument(f"Invalid {label}: {value}.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, (str, Decimal)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidArgument(f"Invalid {label}: {value}.") from None
        if not parsed.is_finite() or parsed != parsed.to_integral_value():
            raise InvalidArgument(f"Invalid {label}: {value}.")
        number = int(parsed)
    else:
        raise InvalidArgument(f"Invalid {label}: {value}.")
    if number < 0:
        raise InvalidArgument(f"Invalid {label}: {value}.")
    return str(number)


def ensure_positive_amount(value: Any, label: str) -> str:
    """
    Amounts that move value must be strictly greater than zero.

        ensure_positive_amount("0", "Stake amount")
        -> InvalidAmount("Stake amount must be greater than zero: 0.")
    """
    try:
        amount = ensure_uint(value, label.lower())
    except InvalidArgument:
        raise InvalidAmount(f"{label} must be greater than zero: {value}.") from None
    if int(amount) <= 0:
        raise InvalidAmount(f"{label} must be greater than zero: {value}.")
    return amount


def parse_tx_options(
    tx_options: Optional[TxOptionsLike],
    from_error: str = "Invalid from address {} in transaction options.",
) -> TxOptions:
    """
    Coerce `tx_options` into TxOptions and check that `from` is a valid
    account address.

    `from_error` is a format string receiving the rejected address; call
    sites use it to name the role of the sender (facilitator, redeemer).
    """
    if tx_options is None:
        raise InvalidArgument(f"Invalid transaction options: {tx_options}.")
    if isinstance(tx_options, TxOptions):
        options = tx_options
    elif isinstance(tx_options, Mapping):
        try:
            options = TxOptions.model_validate(dict(tx_options))
        except ValidationError as exc:
            raise InvalidArgument(f"Invalid transaction options: {tx_options}.") from exc
    else:
        raise InvalidArgument(f"Invalid transaction options: {tx_options}.")

    if not is_address(options.from_):
        raise InvalidArgument(from_error.format(options.from_))
    for label, raw in (("gas", options.gas), ("gas price", options.gas_price), ("value", options.value)):
        if raw is not None:
            ensure_uint(raw, f"{label} in transaction options")
    return options
