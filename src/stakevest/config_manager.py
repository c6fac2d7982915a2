"""
stakevest Configuration Manager

Centralized configuration for deployments and the CLI:
- Environment-based configs (development/staging/production/testnet)
- Config file loading (YAML/JSON)
- Environment variable support (STAKEVEST_*)
- Command-line override support
- Config validation into typed sections
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from stakevest.core.constants import ZERO_ADDRESS
from stakevest.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"
ENV_PREFIX = "STAKEVEST_"


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTNET = "testnet"


def _require_int(name: str, value: Any, minimum: int = 0) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"Invalid {name}: {value!r}. Must be an integer")
    if value < minimum:
        raise ConfigurationError(f"Invalid {name}: {value}. Must be >= {minimum}")


@dataclass
class DeploymentConfig:
    """Who controls the deployed contracts"""
    owner: str = "0x00000000000000000000000000000000000000a1"

    def validate(self):
        if not self.owner or self.owner.lower() == ZERO_ADDRESS:
            raise ConfigurationError("deployment.owner cannot be empty or the zero address")


@dataclass
class TokenConfig:
    """Token metadata for the three ledgers a deployment creates"""
    staking_name: str = "Stake Token"
    staking_symbol: str = "STK"
    reward_name: str = "Reward Token"
    reward_symbol: str = "RWD"
    vesting_name: str = "Vesting Token"
    vesting_symbol: str = "VST"
    decimals: int = 18

    def validate(self):
        for name in ("staking_symbol", "reward_symbol", "vesting_symbol"):
            if not getattr(self, name):
                raise ConfigurationError(f"tokens.{name} cannot be empty")
        if not (0 <= self.decimals <= 18):
            raise ConfigurationError(f"Invalid decimals: {self.decimals}. Must be between 0-18")


@dataclass
class StakingConfig:
    """Staking rewards parameters"""
    reward_rate: int = 0  # reward units per second
    reward_budget: int = 0  # reward tokens minted to the staking contract
    paused: bool = False

    def validate(self):
        _require_int("staking.reward_rate", self.reward_rate)
        _require_int("staking.reward_budget", self.reward_budget)


@dataclass
class VestingConfig:
    """Vesting vault parameters

    ``schedules`` entries use offsets in seconds from deployment time:
    beneficiary, start_offset, cliff_offset, end_offset, unlock_amount, total_amount.
    """
    allocation: int = 0  # tokens minted to the vesting vault before deployment
    schedules: List[Dict[str, Any]] = field(default_factory=list)

    REQUIRED_KEYS = (
        "beneficiary",
        "start_offset",
        "cliff_offset",
        "end_offset",
        "unlock_amount",
        "total_amount",
    )

    def validate(self):
        _require_int("vesting.allocation", self.allocation)
        committed = 0
        for index, entry in enumerate(self.schedules):
            missing = [key for key in self.REQUIRED_KEYS if key not in entry]
            if missing:
                raise ConfigurationError(f"vesting.schedules[{index}] missing keys: {missing}")
            for key in self.REQUIRED_KEYS[1:]:
                _require_int(f"vesting.schedules[{index}].{key}", entry[key])
            if entry["start_offset"] < 1:
                raise ConfigurationError(
                    f"vesting.schedules[{index}].start_offset must be >= 1 (start must be in the future)"
                )
            committed += entry["total_amount"]
        if committed > self.allocation:
            raise ConfigurationError(
                f"Vesting schedules commit {committed} but allocation is {self.allocation}"
            )


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    log_file: Optional[str] = None
    json_console: bool = True

    def validate(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.level).upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        if not isinstance(self.json_console, bool):
            raise ConfigurationError("logging.json_console must be true or false")


class ConfigManager:
    """
    Configuration Manager for stakevest

    Sources, highest priority first:
    1. Command-line overrides
    2. Environment variables (STAKEVEST_SECTION_KEY)
    3. Environment-specific config file
    4. Default config file
    5. Built-in defaults
    """

    SECTIONS = {
        "deployment": DeploymentConfig,
        "tokens": TokenConfig,
        "staking": StakingConfig,
        "vesting": VestingConfig,
        "logging": LoggingConfig,
    }

    def __init__(self,
                 environment: Optional[str] = None,
                 config_dir: Optional[str] = None,
                 cli_overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize Configuration Manager

        Args:
            environment: Environment name (development/staging/production/testnet)
            config_dir: Directory containing config files
            cli_overrides: Dot-notation overrides, e.g. {"staking.reward_rate": 10}
        """
        # .env variables must be visible before env overrides are applied
        load_dotenv()

        self.environment = self._determine_environment(environment)
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = cli_overrides or {}

        self.deployment: DeploymentConfig = None
        self.tokens: TokenConfig = None
        self.staking: StakingConfig = None
        self.vesting: VestingConfig = None
        self.logging: LoggingConfig = None

        self._raw_config: Dict[str, Any] = {}

        self._load_configuration()

    def _determine_environment(self, environment: Optional[str]) -> Environment:
        if environment:
            env_str = environment.lower()
        else:
            env_str = os.getenv("STAKEVEST_ENVIRONMENT", "development").lower()

        env_mapping = {
            "dev": Environment.DEVELOPMENT,
            "development": Environment.DEVELOPMENT,
            "staging": Environment.STAGING,
            "stage": Environment.STAGING,
            "prod": Environment.PRODUCTION,
            "production": Environment.PRODUCTION,
            "testnet": Environment.TESTNET,
            "test": Environment.TESTNET,
        }

        if env_str not in env_mapping:
            raise ConfigurationError(f"Unknown environment: {environment or env_str}")
        return env_mapping[env_str]

    def _load_configuration(self):
        """Load configuration from all sources with proper precedence"""
        default_config = self._load_config_file("default")
        env_config = self._load_config_file(self.environment.value)
        merged_config = self._merge_configs(default_config, env_config)
        merged_config = self._apply_env_variables(merged_config)
        merged_config = self._apply_cli_overrides(merged_config)

        self._raw_config = merged_config
        self._parse_configuration(merged_config)
        self._validate_configuration()

        logger.debug(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "environment": self.environment.value,
                "config_dir": str(self.config_dir),
            }
        )

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        """
        Load configuration from YAML or JSON file

        Args:
            filename: Config filename (without extension)

        Returns:
            Configuration dictionary ({} when the file does not exist)
        """
        yaml_path = self.config_dir / f"{filename}.yaml"
        if yaml_path.exists():
            with open(yaml_path, 'r') as f:
                try:
                    return yaml.safe_load(f) or {}
                except yaml.YAMLError as exc:
                    raise ConfigurationError(f"Invalid YAML in {yaml_path}: {exc}") from exc

        json_path = self.config_dir / f"{filename}.json"
        if json_path.exists():
            with open(json_path, 'r') as f:
                try:
                    return json.load(f)
                except json.JSONDecodeError as exc:
                    raise ConfigurationError(f"Invalid JSON in {json_path}: {exc}") from exc

        return {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides (STAKEVEST_*)

        Example:
        STAKEVEST_STAKING_REWARD_RATE=1000
        STAKEVEST_LOGGING_LEVEL=DEBUG
        """
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key == "STAKEVEST_ENVIRONMENT":
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            config_key = "_".join(parts[1:])
            if section not in self.SECTIONS:
                continue

            result.setdefault(section, {})
            result[section][config_key] = self._parse_env_value(value)

        return result

    def _parse_env_value(self, value: str) -> Union[str, int, bool]:
        """Parse environment variable value to bool, int or str"""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def _apply_cli_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply dot-notation CLI overrides ("section.key": value)"""
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}

        for dotted, value in self.cli_overrides.items():
            if value is None:
                continue
            parts = dotted.split(".")
            if len(parts) != 2:
                raise ConfigurationError(f"Invalid override key '{dotted}'. Use section.key")
            section, key = parts
            result.setdefault(section, {})
            result[section][key] = value

        return result

    def _parse_configuration(self, config: Dict[str, Any]):
        """Parse raw configuration into typed section objects"""
        for section, section_cls in self.SECTIONS.items():
            section_data = config.get(section) or {}
            try:
                setattr(self, section, section_cls(**section_data))
            except TypeError as exc:
                raise ConfigurationError(f"Invalid keys in section '{section}': {exc}") from exc

    def _validate_configuration(self):
        for section in self.SECTIONS:
            getattr(self, section).validate()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Configuration key (e.g., "staking.reward_rate")
            default: Default value if key not found
        """
        value = self.to_dict()
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def get_section(self, section: str) -> Optional[Dict[str, Any]]:
        if section not in self.SECTIONS:
            return None
        return asdict(getattr(self, section))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"environment": self.environment.value}
        for section in self.SECTIONS:
            result[section] = asdict(getattr(self, section))
        return result

    def reload(self):
        """Reload configuration from files"""
        self._load_configuration()

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment.value})"


# Singleton instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(
    environment: Optional[str] = None,
    config_dir: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    force_reload: bool = False
) -> ConfigManager:
    """Get or create the ConfigManager singleton"""
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(
            environment=environment,
            config_dir=config_dir,
            cli_overrides=cli_overrides
        )

    return _config_manager
