"""
Network and payment configuration.

Defaults target the Filecoin Calibration testnet with USDFC as the payment
token. Every field can be overridden from the environment with
`StorageConfig.from_env()`.
"""

import os
from decimal import Decimal

from pydantic import BaseModel, Field

USDFC_TOKEN_ADDRESS = "0x7b1a3117B2b9BE3a3C31e5a097c7F890B3c85A4f"
USDFC_DECIMALS = 18

ENV_PREFIX = "FILTEXT_"


class StorageConfig(BaseModel):
    """Configuration for storing text on Filecoin warm storage."""

    # Network
    chain_id: int = Field(default=314159, description="Filecoin Calibration")
    network_name: str = Field(default="Filecoin Calibration")
    rpc_http_url: str = Field(default="https://api.calibration.node.glif.io/rpc/v1")
    rpc_ws_url: str = Field(default="wss://api.calibration.node.glif.io/rpc/v1")
    explorer_url: str = Field(default="https://calibration.filscan.io")
    faucet_url: str = Field(default="https://faucet.calibration.fildev.network/")

    # Token
    token_address: str = Field(default=USDFC_TOKEN_ADDRESS)
    token_decimals: int = Field(default=USDFC_DECIMALS, ge=0, le=36)

    # Storage
    persistence_days: int = Field(default=30, ge=1)
    min_days_threshold: int = Field(default=10, ge=0)
    with_cdn: bool = Field(default=True)
    retrieval_gateway_url: str = Field(default="https://calibration.filcdn.io")

    # Payment
    dataset_creation_fee: int = Field(default=10**18, ge=0, description="1 USDFC in base units")
    balance_tolerance: Decimal = Field(default=Decimal("0.01"), ge=0)
    scale_anomaly_factor: int = Field(default=1000, ge=1)
    allow_scale_bypass: bool = Field(
        default=True,
        description="Proceed when the balance looks mis-scaled instead of failing",
    )

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Build a config from FILTEXT_* environment variables."""
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


def format_amount(amount: int | str, decimals: int = USDFC_DECIMALS, places: int = 6) -> str:
    """
    Format a base-unit amount as a decimal string, truncating to `places`.

    Example:
        format_amount(1_500_000_000_000_000_000) == "1.500000"
    """
    value = int(amount)
    sign = "-" if value < 0 else ""
    quotient, remainder = divmod(abs(value), 10**decimals)
    fraction = str(remainder).rjust(decimals, "0")[:places]
    if not fraction:
        return f"{sign}{quotient}"
    return f"{sign}{quotient}.{fraction}"


def parse_amount(text: str, decimals: int = USDFC_DECIMALS) -> int:
    """Parse a decimal string such as "1.5" into base units."""
    text = text.strip()
    if not text:
        raise ValueError("Empty amount")
    whole, _, fraction = text.partition(".")
    if len(fraction) > decimals:
        raise ValueError(f"Too many decimal places: {text}")
    if not (whole or "0").isdigit() or (fraction and not fraction.isdigit()):
        raise ValueError(f"Invalid amount: {text}")
    return int(whole or "0") * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
