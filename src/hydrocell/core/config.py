"""
Configuration system with validation and environment awareness.
Based on Pydantic Settings for robust configuration management.
"""
import logging
from pathlib import Path
import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional, Union

from hydrocell.core.constants import DEFAULT_WATER_BALANCE_TOLERANCE
from hydrocell.core.types import DeficitAction, InfiltrationPolicy


class SoilFlowConfig(BaseSettings):
    """Configuration for the soil column flow routines"""

    infiltration_policy: InfiltrationPolicy = Field(
        InfiltrationPolicy.STATIC,
        description="Whether infiltration blocked by a ponded surface is zeroed and reconciled"
    )

    # Historical runs fill every layer on inflow regardless of the water table
    guard_inflow_by_water_table: bool = Field(
        False,
        description="Only fill layers at or above the water table on lateral inflow"
    )

    deficit_action: DeficitAction = Field(
        DeficitAction.RAISE,
        description="Raise or warn when outflow exceeds available saturated storage"
    )

    # Water balance
    check_water_balance: bool = Field(True, description="Ensure water balance closure per step")
    water_balance_tolerance: float = Field(
        DEFAULT_WATER_BALANCE_TOLERANCE, gt=0, description="Closure tolerance (m)"
    )

    model_config = SettingsConfigDict(env_prefix="HYDROCELL_SOIL_", case_sensitive=False)


class MonitoringConfig(BaseSettings):
    """Configuration for logging"""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    model_config = SettingsConfigDict(env_prefix="HYDROCELL_MONITORING_", case_sensitive=False)


class HydroCellConfig(BaseSettings):
    """Main configuration for the hydrocell package"""

    # System
    project_name: str = "hydrocell"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Component configurations
    soil: SoilFlowConfig = Field(default_factory=SoilFlowConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(
        env_prefix="HYDROCELL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_config(self):
        """Cross-field validation"""
        if self.environment == "production" and self.debug:
            raise ValueError("Debug mode cannot be enabled in production")
        return self

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "HydroCellConfig":
        """Load configuration from YAML file"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    def to_yaml(self, yaml_path: Union[str, Path]):
        """Save configuration to YAML file"""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


def configure_logging(config: Optional[HydroCellConfig] = None):
    """Apply the monitoring section to the root logger"""
    config = config or get_config()
    level = "DEBUG" if config.debug else config.monitoring.log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format=config.monitoring.log_format,
    )


# USAGE: Environment variables override defaults
# export HYDROCELL_SOIL__INFILTRATION_POLICY=dynamic
# export HYDROCELL_SOIL__DEFICIT_ACTION=warn

# Global configuration instance
_config: Optional[HydroCellConfig] = None


def get_config(config_path: Optional[Path] = None) -> HydroCellConfig:
    """Get or create configuration instance (singleton pattern)"""
    global _config

    if _config is None:
        if config_path and Path(config_path).exists():
            _config = HydroCellConfig.from_yaml(config_path)
        else:
            # Try to load from environment
            _config = HydroCellConfig()

    return _config


def set_config(config: Optional[HydroCellConfig]):
    """Set configuration (useful for testing)"""
    global _config
    _config = config
