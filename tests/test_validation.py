from decimal import Decimal

import pytest

from mosaic.core.errors import InvalidAmount, InvalidArgument
from mosaic.core.models import TxOptions
from mosaic.helper.validation import (
    ensure_bytes32,
    ensure_positive_amount,
    ensure_uint,
    is_address,
    parse_tx_options,
)

from conftest import addr, h32

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestAddresses:
    def test_lowercase_and_checksummed(self):
        assert is_address(addr(1))
        assert is_address(CHECKSUMMED)

    def test_bad_checksum(self):
        assert not is_address("0x5aaeb6053F3E94C9b9A09f33669435E7Ef1BeAed")

    @pytest.mark.parametrize("value", [None, "", "0x123", 123, "0x" + "g" * 40])
    def test_malformed(self, value):
        assert not is_address(value)


class TestNumbers:
    @pytest.mark.parametrize(
        "value, expected",
        [(0, "0"), ("10", "10"), (" 7 ", "7"), (Decimal("5"), "5"), ("1e3", "1000"),
         (10**30, str(10**30))],
    )
    def test_uint_accepted(self, value, expected):
        assert ensure_uint(value, "amount") == expected

    @pytest.mark.parametrize("value", [None, True, 1.5, -1, "-1", "abc", "1.5", [1]])
    def test_uint_rejected(self, value):
        with pytest.raises(InvalidArgument) as exc:
            ensure_uint(value, "gas price")
        assert exc.value.message == f"Invalid gas price: {value}."

    @pytest.mark.parametrize("value", ["0", 0, "-5", None])
    def test_positive_amount(self, value):
        with pytest.raises(InvalidAmount) as exc:
            ensure_positive_amount(value, "Stake amount")
        assert exc.value.message == f"Stake amount must be greater than zero: {value}."

    def test_invalid_amount_is_an_invalid_argument(self):
        with pytest.raises(InvalidArgument):
            ensure_positive_amount("0", "Redeem amount")


class TestBytes32:
    def test_accepts_32_bytes(self):
        assert ensure_bytes32(h32(1), "message hash") == h32(1)

    @pytest.mark.parametrize("value", [None, "0x01", h32(1)[2:], h32(1) + "00"])
    def test_rejects(self, value):
        with pytest.raises(InvalidArgument) as exc:
            ensure_bytes32(value, "message hash")
        assert exc.value.message == f"Invalid message hash: {value}."


class TestTxOptions:
    def test_missing(self):
        with pytest.raises(InvalidArgument) as exc:
            parse_tx_options(None)
        assert exc.value.message == "Invalid transaction options: None."

    def test_bad_from(self):
        with pytest.raises(InvalidArgument) as exc:
            parse_tx_options({"from": "0x12"})
        assert exc.value.message == "Invalid from address 0x12 in transaction options."

    def test_role_specific_message(self):
        with pytest.raises(InvalidArgument) as exc:
            parse_tx_options({}, "Invalid redeemer address: {}.")
        assert exc.value.message == "Invalid redeemer address: None."

    def test_numbers_become_strings(self):
        options = parse_tx_options({"from": addr(1), "gas": 7500000, "gasPrice": "1", "value": 3})
        assert isinstance(options, TxOptions)
        assert options.gas == "7500000"
        assert options.to_transaction_dict() == {
            "from": addr(1), "gas": 7500000, "gasPrice": 1, "value": 3,
        }

    def test_negative_gas(self):
        with pytest.raises(InvalidArgument):
            parse_tx_options({"from": addr(1), "gas": "-1"})

    def test_passes_through_model(self):
        options = TxOptions(from_=addr(1))
        assert parse_tx_options(options) is options
        assert options.with_value("9").value == "9"
        assert options.value is None
