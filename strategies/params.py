"""
Deployment parameters for a vault and its strategy.

Parameters are plain JSON so a deployment can be reviewed before it runs:

    {
      "topology": "chef_lp",
      "vault": {"name": "Moo BSHARE-BNB", "symbol": "mooBSHARE-BNB"},
      "strategy": {
        "want": "BSHARE-WBNB-LP",
        "pool_id": 0,
        "output_to_native": ["BSHARE", "WBNB"],
        "native_to_lp0": ["WBNB", "BSHARE"],
        "native_to_lp1": ["WBNB"],
        "pending_rewards_function": "pendingShare"
      },
      "roles": {"owner": "...", "keeper": "...", "strategist": "...", "treasury": "..."}
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from compounder.core.errors import ConfigError
from compounder.core.roles import RoleSet

logger = logging.getLogger(__name__)


TOPOLOGIES = ("single_asset", "chef_lp", "reward_pool_lp")


@dataclass
class StrategyParamsFile:
    """
    Everything needed to deploy one vault + strategy pair.

    Routes are lists here; the Strategy freezes them into tuples.
    """
    topology: str
    want: str
    output_to_native: List[str]
    owner: str
    keeper: str
    strategist: str
    treasury: str
    pool_id: Any = 0
    native_to_want: Optional[List[str]] = None
    native_to_lp0: Optional[List[str]] = None
    native_to_lp1: Optional[List[str]] = None
    pending_rewards_function: Optional[str] = None
    harvest_on_deposit: bool = False
    vault_name: str = "Moo Vault"
    vault_symbol: str = "mooVault"
    vault_address: str = "vault"
    strategy_address: str = "strategy"
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.topology not in TOPOLOGIES:
            raise ConfigError(f"Unknown topology '{self.topology}', expected one of {', '.join(TOPOLOGIES)}")
        if not self.output_to_native:
            raise ConfigError("output_to_native is required")

    @property
    def output(self) -> str:
        return self.output_to_native[0]

    @property
    def native(self) -> str:
        return self.output_to_native[-1]

    def roles(self) -> RoleSet:
        return RoleSet(
            owner=self.owner,
            keeper=self.keeper,
            vault=self.vault_address,
            strategist=self.strategist,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyParamsFile":
        """
        Build from the nested JSON layout.

        Raises:
            ConfigError: On a missing section or key
        """
        try:
            strategy = data["strategy"]
            roles = data["roles"]
            vault = data.get("vault", {})
            return cls(
                topology=data["topology"],
                want=strategy["want"],
                pool_id=strategy.get("pool_id", 0),
                output_to_native=list(strategy["output_to_native"]),
                native_to_want=strategy.get("native_to_want"),
                native_to_lp0=strategy.get("native_to_lp0"),
                native_to_lp1=strategy.get("native_to_lp1"),
                pending_rewards_function=strategy.get("pending_rewards_function"),
                harvest_on_deposit=bool(strategy.get("harvest_on_deposit", False)),
                owner=roles["owner"],
                keeper=roles["keeper"],
                strategist=roles["strategist"],
                treasury=roles["treasury"],
                vault_name=vault.get("name", "Moo Vault"),
                vault_symbol=vault.get("symbol", "mooVault"),
                vault_address=vault.get("address", "vault"),
                strategy_address=strategy.get("address", "strategy"),
                extra=data.get("simulation", {}),
            )
        except KeyError as e:
            raise ConfigError(f"Missing deployment parameter: {e}") from e

    @classmethod
    def from_json_file(cls, path: str) -> "StrategyParamsFile":
        with open(Path(path), "r") as f:
            data = json.load(f)
        logger.info(f"Loaded deployment parameters from {path}")
        return cls.from_dict(data)
