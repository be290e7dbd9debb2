"""
Environment configuration for the compounder.

Settings come from the process environment, optionally seeded from a .env
file. Numeric settings are clamped into range with a log line rather than
rejected; combinations the fee schedule cannot accept raise
ConfigurationError.
"""

import os
import sys
import logging
from typing import Dict, Optional
from pathlib import Path
from dotenv import load_dotenv

from compounder.core.errors import FeeConfigError
from compounder.engine.context import HarvestPolicy
from compounder.engine.fees import FeeSchedule, MAX_CALL_FEE, WITHDRAWAL_FEE_CAP

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """A setting is missing or unusable."""


# Call fee (per 1000) applied after deployment, by chain.
DEFAULT_CALL_FEE_BY_CHAIN: Dict[str, int] = {
    "bsc": 111,
    "avax": 111,
    "one": 111,
    "arbitrum": 111,
    "cronos": 111,
    "moonriver": 111,
    "polygon": 11,
    "fantom": 11,
    "celo": 11,
    "aurora": 11,
    "metis": 11,
    "localhost": 5,
}


class EnvironmentConfig:
    """Typed, range-checked view over the environment."""

    # Must be set explicitly outside a local simulation.
    PRODUCTION_KEYS = ("CHAIN_NAME", "AUDIT_LOG_PATH")

    DEFAULTS = {
        "CHAIN_NAME": "localhost",
        "LOG_LEVEL": "INFO",
        "CONSOLE_LOG_LEVEL": "INFO",
        "TREASURY_FEE": "35",
        "STRATEGIST_FEE": "5",
        "WITHDRAWAL_FEE": "10",
        "HARVEST_ON_DEPOSIT": "false",
        "HARVEST_WHEN_PAUSED": "false",
        "SWAP_DEADLINE": "600",
        "KEEPER_INTERVAL": "3600",
        "MIN_CALL_REWARD": "0",
    }

    # Read only when present; CALL_FEE otherwise follows the chain.
    OVERRIDES = ("CALL_FEE",)

    def __init__(self, env_file: Optional[str] = None):
        """
        Args:
            env_file: .env file to load; without one the closest .env in
                the working directory or its parents is used, if any
        """
        dotenv_path = Path(env_file) if env_file else self._find_dotenv()
        if dotenv_path is not None:
            load_dotenv(dotenv_path)

    @staticmethod
    def _find_dotenv() -> Optional[Path]:
        cwd = Path.cwd()
        for directory in (cwd, *cwd.parents):
            candidate = directory / ".env"
            if candidate.exists():
                return candidate
        return None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = os.getenv(key)
        if value is None:
            value = self.DEFAULTS.get(key)
        return value or default

    def get_required(self, key: str) -> str:
        value = self.get(key)
        if not value:
            raise ConfigurationError(f"{key} must be set (environment or .env file)")
        return value

    def validate(self, require_all: bool = False) -> Dict[str, str]:
        """
        Collect every known setting.

        Args:
            require_all: Fail when a PRODUCTION_KEYS entry is not set
                explicitly (a default does not count)

        Returns:
            Setting name to raw string value

        Raises:
            ConfigurationError: Listing every missing production key
        """
        if require_all:
            missing = [key for key in self.PRODUCTION_KEYS if not os.getenv(key)]
            if missing:
                raise ConfigurationError(
                    f"Missing settings: {', '.join(missing)} (see .env.example)"
                )

        values = {key: self.get(key) for key in self.DEFAULTS}
        for key in self.PRODUCTION_KEYS + self.OVERRIDES:
            value = self.get(key)
            if value:
                values[key] = value
        return values

    def _get_int(self, key: str, default: int, minimum: int, maximum: int) -> int:
        try:
            value = int(self.get(key, str(default)))
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid {key} value: {e}, using default {default}")
            return default
        if value < minimum:
            logger.warning(f"{key} {value} is too low, using minimum {minimum}")
            return minimum
        if value > maximum:
            logger.warning(f"{key} {value} is too high, using maximum {maximum}")
            return maximum
        return value

    def _get_bool(self, key: str) -> bool:
        return str(self.get(key, "false")).strip().lower() in ("1", "true", "yes", "on")

    def get_chain_name(self) -> str:
        return self.get("CHAIN_NAME", "localhost").strip().lower()

    def is_production(self) -> bool:
        """Anything but a local simulation chain counts as production."""
        return self.get_chain_name() != "localhost"

    def get_call_fee(self) -> int:
        """
        Call fee per 1000.

        Uses CALL_FEE when set, otherwise the chain's default, otherwise
        the FeeSchedule default.
        """
        chain_default = DEFAULT_CALL_FEE_BY_CHAIN.get(self.get_chain_name(), FeeSchedule.call_fee)
        if os.getenv("CALL_FEE") is None:
            return chain_default
        return self._get_int("CALL_FEE", chain_default, 0, MAX_CALL_FEE)

    def get_treasury_fee(self) -> int:
        return self._get_int("TREASURY_FEE", 35, 0, 1000)

    def get_strategist_fee(self) -> int:
        return self._get_int("STRATEGIST_FEE", 5, 0, 1000)

    def get_withdrawal_fee(self) -> int:
        """Withdrawal fee per 10000, capped at WITHDRAWAL_FEE_CAP."""
        return self._get_int("WITHDRAWAL_FEE", 10, 0, WITHDRAWAL_FEE_CAP)

    def get_harvest_on_deposit(self) -> bool:
        return self._get_bool("HARVEST_ON_DEPOSIT")

    def get_harvest_when_paused(self) -> bool:
        return self._get_bool("HARVEST_WHEN_PAUSED")

    def get_swap_deadline(self) -> int:
        """Seconds a harvest swap stays valid (default 600)."""
        return self._get_int("SWAP_DEADLINE", 600, 1, 86400)

    def get_keeper_interval(self) -> int:
        return self._get_int("KEEPER_INTERVAL", 3600, 60, 86400)

    def get_min_call_reward(self) -> int:
        return self._get_int("MIN_CALL_REWARD", 0, 0, 10 ** 30)

    def get_audit_log_path(self) -> Optional[Path]:
        value = self.get("AUDIT_LOG_PATH")
        return Path(value) if value else None

    def build_fee_schedule(self) -> FeeSchedule:
        """
        Fee schedule from the environment.

        Raises:
            ConfigurationError: If the shares together break a fee cap
        """
        try:
            return FeeSchedule(
                call_fee=self.get_call_fee(),
                treasury_fee=self.get_treasury_fee(),
                strategist_fee=self.get_strategist_fee(),
                withdrawal_fee=self.get_withdrawal_fee(),
            )
        except FeeConfigError as e:
            raise ConfigurationError(f"Invalid fee configuration: {e}") from e

    def get_harvest_policy(self) -> HarvestPolicy:
        return HarvestPolicy(
            allow_when_paused=self.get_harvest_when_paused(),
            swap_deadline=self.get_swap_deadline(),
        )


def load_config(env_file: Optional[str] = None, require_all: bool = False) -> EnvironmentConfig:
    """Build an EnvironmentConfig and validate it; raises ConfigurationError."""
    config = EnvironmentConfig(env_file)
    config.validate(require_all=require_all)
    return config


def check_startup_requirements(env_file: Optional[str] = None, log_dir: str = "logs") -> EnvironmentConfig:
    """
    Validate the environment before a keeper or deployment starts.

    Outside a local simulation the production keys are mandatory. Exits the
    process with status 1 on any ConfigurationError.

    Args:
        env_file: .env file to load (default: nearest .env, if any)
        log_dir: Log directory to create
    """
    config = EnvironmentConfig(env_file)
    production = config.is_production()
    logger.info(
        "Startup check for chain %s (%s)",
        config.get_chain_name(),
        "production" if production else "simulation",
    )

    try:
        config.validate(require_all=production)
        schedule = config.build_fee_schedule()
    except ConfigurationError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)

    policy = config.get_harvest_policy()
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger.info(
        "Fees: call %d/1000, treasury %d/1000, strategist %d/1000, withdrawal %d/10000",
        schedule.call_fee,
        schedule.treasury_fee,
        schedule.strategist_fee,
        schedule.withdrawal_fee,
    )
    logger.info(
        "Harvest: on deposit %s, when paused %s, swap deadline %ds, keeper every %ds",
        config.get_harvest_on_deposit(),
        policy.allow_when_paused,
        policy.swap_deadline,
        config.get_keeper_interval(),
    )
    if not config.get_audit_log_path():
        logger.warning("AUDIT_LOG_PATH not set, events go to the log only")
    return config
