"""
Central configuration for the mosaic facilitator library.

Values are read from environment variables (prefix ``MOSAIC_``) through
pydantic-settings, so a facilitator or anchor worker process is configured
the same way in every deployment:

    from mosaic.core.settings import get_settings

    settings = get_settings()
    settings.origin_rpc_url
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MosaicSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MOSAIC_", extra="ignore")

    # ------------------------------------------------------------------
    # Chain endpoints
    # ------------------------------------------------------------------
    origin_rpc_url: str = Field(
        default="http://localhost:8545",
        description="JSON-RPC endpoint of the origin (value) chain.",
    )
    auxiliary_rpc_url: str = Field(
        default="http://localhost:8546",
        description="JSON-RPC endpoint of the auxiliary (utility) chain.",
    )

    # ------------------------------------------------------------------
    # Contract addresses
    # ------------------------------------------------------------------
    origin_gateway: Optional[str] = Field(default=None, description="EIP20Gateway on origin.")
    origin_anchor: Optional[str] = Field(
        default=None, description="Anchor on origin (stores auxiliary state roots)."
    )
    auxiliary_cogateway: Optional[str] = Field(
        default=None, description="EIP20CoGateway on auxiliary."
    )
    auxiliary_anchor: Optional[str] = Field(
        default=None, description="Anchor on auxiliary (stores origin state roots)."
    )
    auxiliary_ost_prime: Optional[str] = Field(
        default=None, description="OSTPrime base token on auxiliary."
    )

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    anchor_poll_interval_ms: int = Field(
        default=10_000,
        description="Interval between two reads of the latest anchored height.",
    )
    anchor_wait_timeout_ms: int = Field(
        default=30 * 60 * 1000,
        description="Upper bound for waiting on a state root commit.",
    )
    anchor_worker_interval_ms: int = Field(
        default=10_000,
        description="Pause of the anchor worker between two commits.",
    )

    default_gas: str = Field(
        default="7500000",
        description="Gas limit used by the workers when none is configured.",
    )

    @field_validator("anchor_poll_interval_ms", "anchor_wait_timeout_ms", "anchor_worker_interval_ms")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timing values must be greater than zero")
        return v

    def origin_contract_addresses(self) -> Dict[str, str]:
        return _drop_empty({"EIP20Gateway": self.origin_gateway, "Anchor": self.origin_anchor})

    def auxiliary_contract_addresses(self) -> Dict[str, str]:
        return _drop_empty(
            {
                "EIP20CoGateway": self.auxiliary_cogateway,
                "Anchor": self.auxiliary_anchor,
                "OSTPrime": self.auxiliary_ost_prime,
            }
        )


def _drop_empty(mapping: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {k: v for k, v in mapping.items() if v}


@lru_cache()
def get_settings() -> MosaicSettings:
    return MosaicSettings()
