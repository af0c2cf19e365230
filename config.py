# ============================================================================
# MODULE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the ArcGIS feature service connection
# EXPORTS: AppConfig, get_app_config, build_feature_client, validate_configuration
# DEPENDENCIES: pydantic-settings
# SOURCE: Environment variables / .env file
# PATTERNS: Singleton pattern for config, client built once at startup and injected
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration for the dashboard API:
- ArcGIS FeatureServer base URL and the default layer shown on the map
- Map feed query options (record cap, field list)
- Optional HTTP timeout for the feature client

Environment Variables:
    Required:
    - ARCGIS_SERVICE_URL: FeatureServer base URL

    Optional:
    - ARCGIS_DEFAULT_LAYER_ID: Layer served by the map feed (default: 12)
    - ARCGIS_DEFAULT_LAYER_NAME: Display name of that layer
    - ARCGIS_MAP_MAX_RECORDS: Record cap requested by the map feed (default: 100)
    - ARCGIS_MAP_OUT_FIELDS: Fields requested by the map feed
    - ARCGIS_TIMEOUT_SECONDS: HTTP timeout; unset means no timeout
    - DEBUG_LOGGING: "true" for DEBUG level logs

Usage:
    from config import get_app_config, build_feature_client

    config = get_app_config()
    client = build_feature_client(config)
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arcgis_features import FeatureClient

logger = logging.getLogger(__name__)


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        arcgis_service_url: FeatureServer base URL
        arcgis_default_layer_id: Layer used by the map feed and smoke test
        arcgis_default_layer_name: Display name reported in map feed metadata
        arcgis_map_max_records: maxRecordCount requested by the map feed
        arcgis_map_out_fields: outFields requested by the map feed
        arcgis_timeout_seconds: HTTP timeout (None disables timeouts)
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    arcgis_service_url: str = Field(..., description="ArcGIS FeatureServer base URL")
    arcgis_default_layer_id: int = Field(default=12, ge=0, description="Default layer ID")
    arcgis_default_layer_name: str = Field(
        default="BCBH Preliminary Segments",
        description="Display name of the default layer"
    )
    arcgis_map_max_records: int = Field(default=100, gt=0, description="Map feed record cap")
    arcgis_map_out_fields: str = Field(
        default="OBJECTID,link_id,net_type,net_dir,SHAPE__Len",
        description="Map feed field list"
    )
    arcgis_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="HTTP timeout in seconds; unset means no timeout"
    )

    @field_validator("arcgis_service_url")
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        """Ensure the service URL is set."""
        if not v or not v.strip():
            raise ValueError("ARCGIS_SERVICE_URL is required")
        return v.strip().rstrip("/")


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


def build_feature_client(config: Optional[AppConfig] = None) -> FeatureClient:
    """
    Build the feature client for this process.

    Called once by function_app.py; the instance is passed to the triggers
    and health checks that need it.
    """
    config = config or get_app_config()
    return FeatureClient(config.arcgis_service_url, timeout=config.arcgis_timeout_seconds)


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Returns:
        bool: True if configuration is valid

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  ArcGIS Service URL: {config.arcgis_service_url}")
        logger.info(f"  Default Layer: {config.arcgis_default_layer_id} ({config.arcgis_default_layer_name})")
        logger.info(f"  Map Feed: maxRecordCount={config.arcgis_map_max_records}, outFields={config.arcgis_map_out_fields}")
        logger.info(f"  Timeout: {config.arcgis_timeout_seconds or 'none'}")
        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()
