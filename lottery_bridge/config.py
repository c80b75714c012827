"""
Client configuration.

One frozen dataclass carries every endpoint and timing constant the
client needs. Nothing reads the environment implicitly: callers either
construct ``LotteryConfig`` directly or opt in with ``from_env()``.

Environment variables (all optional):
    - ``LOTTERY_CONTRACT_ID`` — contract identity (C... strkey).
    - ``SOROBAN_RPC_URL`` — simulate/submit endpoint.
    - ``HORIZON_URL`` — account-sequence endpoint. Derived from the
      passphrase when unset.
    - ``NETWORK_PASSPHRASE`` — network the client builds envelopes for.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_CONTRACT_ID = "CDEHL3FHJEO2RDYILJCPPNYWMKF2PGUJKAKGUU5MW6GWLETJOKLKI53Y"
TESTNET_NETWORK_PASSPHRASE = "Test SDF Network ; September 2015"
DEFAULT_RPC_URL = "https://soroban-testnet.stellar.org"
TESTNET_HORIZON_URL = "https://horizon-testnet.stellar.org"
PUBLIC_HORIZON_URL = "https://horizon.stellar.org"


def horizon_url_for(network_passphrase: str) -> str:
    """Pick the public Horizon instance matching a network passphrase."""
    if "Test" in network_passphrase:
        return TESTNET_HORIZON_URL
    return PUBLIC_HORIZON_URL


@dataclass(frozen=True)
class LotteryConfig:
    """Endpoints, identities and timing for one client instance.

    Attributes:
        contract_id: The lottery contract address.
        rpc_url: Soroban RPC endpoint (simulate, send, getTransaction).
        horizon_url: Horizon endpoint used for account sequence lookup.
        network_passphrase: Passphrase envelopes are built and parsed for.
        base_fee: Inclusion fee in stroops before resource fees are added.
        tx_timeout_s: Validity window set on assembled envelopes.
        poll_interval_s: Session refresh interval.
        confirm_poll_interval_s: Interval between inclusion checks after
            an accepted submission.
        http_timeout_s: Per-request HTTP timeout.
    """

    contract_id: str = DEFAULT_CONTRACT_ID
    rpc_url: str = DEFAULT_RPC_URL
    horizon_url: str = TESTNET_HORIZON_URL
    network_passphrase: str = TESTNET_NETWORK_PASSPHRASE
    base_fee: int = 100
    tx_timeout_s: int = 30
    poll_interval_s: float = 3.0
    confirm_poll_interval_s: float = 2.0
    http_timeout_s: float = 30.0

    def __post_init__(self) -> None:
        if not self.contract_id:
            raise ValueError("contract_id must be non-empty")
        if self.base_fee < 1:
            raise ValueError(f"base_fee must be >= 1, got: {self.base_fee}")
        if self.tx_timeout_s < 1:
            raise ValueError(f"tx_timeout_s must be >= 1, got: {self.tx_timeout_s}")
        if self.poll_interval_s <= 0:
            raise ValueError(
                f"poll_interval_s must be positive, got: {self.poll_interval_s}"
            )
        if self.confirm_poll_interval_s <= 0:
            raise ValueError(
                "confirm_poll_interval_s must be positive, "
                f"got: {self.confirm_poll_interval_s}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LotteryConfig:
        """Build a config from environment variables.

        Blank or missing variables fall back to the defaults.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
        """
        env = os.environ if environ is None else environ

        def _get(name: str, default: str) -> str:
            value = env.get(name, "").strip()
            return value or default

        passphrase = _get("NETWORK_PASSPHRASE", TESTNET_NETWORK_PASSPHRASE)
        return cls(
            contract_id=_get("LOTTERY_CONTRACT_ID", DEFAULT_CONTRACT_ID),
            rpc_url=_get("SOROBAN_RPC_URL", DEFAULT_RPC_URL),
            horizon_url=_get("HORIZON_URL", horizon_url_for(passphrase)),
            network_passphrase=passphrase,
        )
