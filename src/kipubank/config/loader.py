"""
Configuration loader for kipubank.

What it does:
- Reads static settings from `config/config.yaml`: active network, the
  withdrawal limit (in ether), the state snapshot path and the known network
  profiles (chain id, default RPC URL).
- Resolves secrets from environment variables: `{NETWORK}_RPC_URL` overrides
  the profile URL, `PRIVATE_KEY` is the deployer key, `ETHERSCAN_API_KEY` the
  explorer key. `KIPUBANK_NETWORK` overrides the active network.
- Validates the resulting configuration using Pydantic models.

Where it is used:
- Called by `kipubank.main` to build a `Settings` object for runtime.
"""

import os
import yaml
from typing import Dict, Optional
from pydantic import BaseModel, field_validator, model_validator

from kipubank.units import parse_ether

LOCAL_NETWORKS = ("hardhat", "localhost")


class NetworkProfile(BaseModel):
    """Chain parameters for one deployment target."""
    chain_id: int
    rpc_url: Optional[str] = None


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    network: str
    chain_id: int
    rpc_url: Optional[str] = None
    withdrawal_limit_eth: str
    state_path: str = "data/vault.sqlite"
    private_key: str = ""
    etherscan_api_key: str = ""

    @field_validator("withdrawal_limit_eth")
    @classmethod
    def positive_limit(cls, v):
        if parse_ether(v) <= 0:
            raise ValueError("withdrawal_limit_eth must be positive")
        return v

    @model_validator(mode="after")
    def remote_needs_key(self):
        if not self.is_local and not self.private_key:
            raise ValueError(f"Missing required deployer key for network {self.network}: set PRIVATE_KEY")
        return self

    @property
    def is_local(self) -> bool:
        return self.network in LOCAL_NETWORKS

    @property
    def withdrawal_limit(self) -> int:
        """Withdrawal limit in wei."""
        return parse_ether(self.withdrawal_limit_eth)


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, resolve env-var overrides and secrets, return Settings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    networks: Dict[str, NetworkProfile] = {
        name: NetworkProfile(**(profile or {})) for name, profile in (config.get("networks") or {}).items()
    }
    network = os.getenv("KIPUBANK_NETWORK") or config.get("network", "hardhat")
    if network not in networks:
        raise ValueError(f"Unknown network {network!r}; configured: {sorted(networks)}")
    profile = networks[network]
    env_prefix = network.replace("-", "_").upper()
    return Settings(
        network=network,
        chain_id=profile.chain_id,
        rpc_url=os.getenv(f"{env_prefix}_RPC_URL") or profile.rpc_url,
        withdrawal_limit_eth=str(config.get("withdrawal_limit_eth", "1.0")),
        state_path=config.get("state_path", "data/vault.sqlite"),
        private_key=os.getenv("PRIVATE_KEY", ""),
        etherscan_api_key=os.getenv("ETHERSCAN_API_KEY", ""),
    )
