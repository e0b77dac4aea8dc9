import pytest
from pydantic import ValidationError

from mosaic.contracts.web3_client import Web3ChainClient, _normalise, build_mosaic
from mosaic.core.settings import MosaicSettings, get_settings

from conftest import addr


class TestMosaicSettings:
    def test_defaults(self, monkeypatch):
        for name in ("ANCHOR_POLL_INTERVAL_MS", "ANCHOR_WAIT_TIMEOUT_MS", "DEFAULT_GAS"):
            monkeypatch.delenv(f"MOSAIC_{name}", raising=False)
        settings = MosaicSettings()

        assert settings.anchor_poll_interval_ms == 10_000
        assert settings.anchor_wait_timeout_ms == 1_800_000
        assert settings.default_gas == "7500000"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("MOSAIC_ANCHOR_POLL_INTERVAL_MS", "250")
        monkeypatch.setenv("MOSAIC_ORIGIN_GATEWAY", addr(2))

        settings = MosaicSettings()

        assert settings.anchor_poll_interval_ms == 250
        assert settings.origin_contract_addresses() == {"EIP20Gateway": addr(2)}

    @pytest.mark.parametrize("field", ["anchor_poll_interval_ms", "anchor_wait_timeout_ms"])
    def test_no_unbounded_waits(self, field):
        with pytest.raises(ValidationError):
            MosaicSettings(**{field: 0})

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestWeb3Wiring:
    def test_build_mosaic(self):
        settings = MosaicSettings(
            origin_gateway=addr(2),
            origin_anchor=addr(0x0A),
            auxiliary_cogateway=addr(3),
            auxiliary_anchor=addr(0x0B),
        )

        mosaic = build_mosaic(settings)

        assert isinstance(mosaic.origin.client, Web3ChainClient)
        assert mosaic.origin.address_of("EIP20Gateway") == addr(2)
        assert dict(mosaic.auxiliary.contract_addresses) == {
            "EIP20CoGateway": addr(3),
            "Anchor": addr(0x0B),
        }

    def test_normalise(self):
        assert _normalise(b"\x01\x02") == "0x0102"
        assert _normalise({"_messageHash": b"\xff", "_amount": 5}) == {
            "_messageHash": "0xff",
            "_amount": 5,
        }
        assert _normalise((1, b"\x00")) == [1, "0x00"]
