# ============================================================================
# MODULE CONTEXT - SERVICE VALIDATOR CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - expected dataset and thresholds
# PURPOSE: What the validation suite expects to find on the feature service
# EXPORTS: ValidationExpectations
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables (no dependency on main app config)
# ============================================================================

"""
Service Validator Configuration - Standalone

Environment Variables (all optional):
    - VALIDATOR_LAYER_ID: Layer exercised by the checks (default: 12)
    - VALIDATOR_LAYER_NAME: Expected layer name; empty disables the name check
      (default: "BCBH Preliminary Segments")
    - VALIDATOR_GEOMETRY_TYPE: Expected geometry type tag (default: esriGeometryPolyline)
    - VALIDATOR_MISSING_LAYER_ID: Layer ID that must not exist (default: 99999)
    - VALIDATOR_CONCURRENT_THRESHOLD_MS: Budget for the concurrent batch (default: 5000)
    - VALIDATOR_SINGLE_THRESHOLD_MS: Budget for the large single request (default: 3000)
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from arcgis_features.models import GeometryType


class ValidationExpectations(BaseModel):
    """Expected dataset and latency thresholds for the validation suite."""
    model_config = ConfigDict(validate_default=True)

    layer_id: int = Field(
        default_factory=lambda: int(os.getenv("VALIDATOR_LAYER_ID", "12")),
        ge=0,
        description="Layer exercised by the checks"
    )
    layer_name: Optional[str] = Field(
        default_factory=lambda: os.getenv("VALIDATOR_LAYER_NAME", "BCBH Preliminary Segments"),
        description="Expected layer name (None skips the comparison)"
    )
    geometry_type: GeometryType = Field(
        default_factory=lambda: GeometryType(
            os.getenv("VALIDATOR_GEOMETRY_TYPE", GeometryType.POLYLINE.value)
        ),
        description="Expected geometry type of the layer"
    )
    missing_layer_id: int = Field(
        default_factory=lambda: int(os.getenv("VALIDATOR_MISSING_LAYER_ID", "99999")),
        ge=0,
        description="Layer ID that the service must reject"
    )
    invalid_where: str = Field(
        default="INVALID_SQL_SYNTAX",
        description="Filter the service must reject"
    )
    reasonable_max_features: int = Field(
        default=100,
        gt=0,
        description="Upper bound for a 10-record request (services may override maxRecordCount)"
    )
    concurrent_threshold_ms: float = Field(
        default_factory=lambda: float(os.getenv("VALIDATOR_CONCURRENT_THRESHOLD_MS", "5000")),
        gt=0,
        description="Budget for four concurrent requests"
    )
    single_threshold_ms: float = Field(
        default_factory=lambda: float(os.getenv("VALIDATOR_SINGLE_THRESHOLD_MS", "3000")),
        gt=0,
        description="Budget for one 100-record request"
    )

    @field_validator("layer_name")
    @classmethod
    def empty_name_disables_check(cls, v: Optional[str]) -> Optional[str]:
        return v or None
