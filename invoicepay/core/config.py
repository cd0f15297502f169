"""
invoicepay/core/config.py

Deployment identities and settlement tuning.

DeploymentConfig   — which invoicing program, stake pool and mint to talk to.
SettlementSettings — lookback window, batch size, commitment levels, timeouts.

Both default to The Vault mainnet deployment. load_config() overrides either
section from a YAML file:

    deployment:
      issuer_base: vocefgUvSTg7q4ZfeTLg2RAgeYN6V7t6rNVNb3dzrh1
      program:     EpoivtVh9dgWFxE6MYgF3YnobYWtZr2VfCuP7iT3N927
    settlement:
      lookback_periods: 20
      batch_size:       5
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from solders.pubkey import Pubkey

from invoicepay.core.exceptions import ConfigError


DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

SPL_STAKE_POOL_PROGRAM_ID    = Pubkey.from_string("SPoo1Ku8WFXoNDMHPsrGSTSG1Y47rzgn41SLUNakuHy")
SPL_TOKEN_PROGRAM_ID         = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID  = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
SYSTEM_PROGRAM_ID            = Pubkey.from_string("11111111111111111111111111111111")

# Lamports per SOL; vSOL uses the same 9 decimals.
DECIMALS_FACTOR = 1_000_000_000

# getMultipleAccounts accepts at most this many keys per call.
MAX_LOOKBACK_PERIODS = 100


@dataclass(frozen=True)
class DeploymentConfig:
    issuer_base:     Pubkey
    program:         Pubkey
    pool:            Pubkey
    derivative_mint: Pubkey
    asset_program:   Pubkey = SPL_TOKEN_PROGRAM_ID
    pool_program:    Pubkey = SPL_STAKE_POOL_PROGRAM_ID

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: "DeploymentConfig" = None) -> "DeploymentConfig":
        """
        Build from a mapping of field name → base58 string.
        Missing fields are taken from base (The Vault mainnet by default).
        """
        base = base or THE_VAULT
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                "Unknown deployment keys", {"keys": ", ".join(unknown)}
            )
        overrides = {}
        for key, value in data.items():
            try:
                overrides[key] = Pubkey.from_string(str(value))
            except Exception as exc:
                raise ConfigError(
                    f"Invalid public key for deployment.{key}", {"value": value}
                ) from exc
        return replace(base, **overrides)


THE_VAULT = DeploymentConfig(
    issuer_base=     Pubkey.from_string("vocefgUvSTg7q4ZfeTLg2RAgeYN6V7t6rNVNb3dzrh1"),
    program=         Pubkey.from_string("EpoivtVh9dgWFxE6MYgF3YnobYWtZr2VfCuP7iT3N927"),
    pool=            Pubkey.from_string("Fu9BYC6tWBo1KMKaP3CFoKfRhqv9akmy3DuYwnCyWiyC"),
    derivative_mint= Pubkey.from_string("vSoLxydx6akxyMD9XEcPvGYNGq6Nn66oqVb3UkGkei7"),
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class SettlementSettings:
    lookback_periods:     int   = 20
    batch_size:           int   = 5
    commitment:           str   = "confirmed"
    blockhash_commitment: str   = "finalized"
    confirm_timeout:      float = 60.0
    poll_interval:        float = 0.5
    rpc_timeout:          float = 30.0

    def __post_init__(self) -> None:
        if (
            not _is_int(self.lookback_periods)
            or not 1 <= self.lookback_periods <= MAX_LOOKBACK_PERIODS
        ):
            raise ConfigError(
                f"lookback_periods must be an integer from 1 to {MAX_LOOKBACK_PERIODS}",
                {"value": self.lookback_periods},
            )
        if not _is_int(self.batch_size) or self.batch_size < 1:
            raise ConfigError(
                "batch_size must be a positive integer",
                {"value": self.batch_size},
            )
        for name in ("commitment", "blockhash_commitment"):
            value = getattr(self, name)
            if value not in COMMITMENT_LEVELS:
                raise ConfigError(
                    f"{name} must be one of {', '.join(COMMITMENT_LEVELS)}",
                    {"value": value},
                )
        for name in ("confirm_timeout", "poll_interval", "rpc_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive", {"value": getattr(self, name)})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementSettings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                "Unknown settlement keys", {"keys": ", ".join(unknown)}
            )
        try:
            return cls(**data)
        except TypeError as exc:
            raise ConfigError(f"Invalid settlement settings: {exc}") from exc


def load_config(path: Path) -> Tuple[DeploymentConfig, SettlementSettings]:
    """Load deployment and settlement sections from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    unknown = sorted(set(raw) - {"deployment", "settlement"})
    if unknown:
        raise ConfigError("Unknown config sections", {"sections": ", ".join(unknown)})

    deployment = DeploymentConfig.from_dict(raw.get("deployment") or {})
    settings   = SettlementSettings.from_dict(raw.get("settlement") or {})
    return deployment, settings
