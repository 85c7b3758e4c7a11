"""
Horizon Configuration.

Provides sensible defaults with override capability:
defaults -> config file (YAML or JSON) -> HORIZON_* environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .core.consensus import Network
from .exceptions import ConfigurationError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


class HorizonConfig(BaseModel):
    """
    Configuration for horizon state validation.

    Environment variables override values from files and arguments
    (HORIZON_* prefix).
    """

    # Consensus
    network: str = "localnet"

    # Validation
    header_chunk_size: int = Field(default=50, gt=0)
    check_mmr_roots: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator("network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        v = v.lower()
        known = [n.value for n in Network]
        if v not in known:
            raise ValueError(f"unknown network {v!r}, expected one of {known}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v

    def model_post_init(self, __context: Any) -> None:
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        env_map = {
            "HORIZON_NETWORK": "network",
            "HORIZON_HEADER_CHUNK_SIZE": "header_chunk_size",
            "HORIZON_CHECK_MMR_ROOTS": "check_mmr_roots",
            "HORIZON_LOG_LEVEL": "log_level",
            "HORIZON_LOG_FILE": "log_file",
        }

        for env_var, attr in env_map.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                setattr(self, attr, value)
            except PydanticValidationError as e:
                raise ConfigurationError(f"Invalid value for {env_var}: {value!r}") from e

    @property
    def network_id(self) -> Network:
        return Network(self.network)

    def to_dict(self) -> dict[str, Any]:
        """Export config to dictionary."""
        return self.model_dump()

    def save(self, path: Union[str, Path]) -> None:
        """Save config to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "HorizonConfig":
        """
        Load config from a YAML (or JSON) file.

        Raises:
            ConfigurationError: If the file cannot be read or holds invalid settings
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    @classmethod
    def development(cls) -> "HorizonConfig":
        """Localnet config with MMR checks and debug logging."""
        return cls(network="localnet", check_mmr_roots=True, log_level="DEBUG")

    @classmethod
    def production(cls) -> "HorizonConfig":
        """Testnet config with quieter logging."""
        return cls(network="testnet", log_level="WARNING")


def configure_logging(config: HorizonConfig) -> None:
    """Set up root logging from config."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
