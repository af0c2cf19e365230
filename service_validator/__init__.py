# ============================================================================
# MODULE CONTEXT - SERVICE VALIDATOR
# ============================================================================
# STATUS: Standalone Module - self-test harness for the feature client
# PURPOSE: Run a fixed set of live checks against a FeatureServer and summarize them
# EXPORTS: run_validation_suite, format_summary, ValidationExpectations,
#          ValidationSuite, CheckResult, validation_check
# DEPENDENCIES: arcgis_features, pydantic
# ENTRY_POINTS: python -m service_validator, GET /api/arcgis/validate
# ============================================================================

"""
Service Validator

Checks, in order:
    1. Service Initialization
    2. Layer Info Retrieval
    3. Feature Fetching
    4. Data Validation
    5. Error Handling
    6. GeoJSON Conversion
    7. Performance Testing
    8. Data Consistency

Usage:
    from service_validator import run_validation_suite, format_summary

    suite = await run_validation_suite(client)
    print(format_summary(suite))
"""

from .checks import ALL_CHECKS, CheckFailed, validation_check
from .config import ValidationExpectations
from .models import CheckResult, ValidationSuite
from .runner import format_summary, run_validation_suite

__all__ = [
    "ALL_CHECKS",
    "CheckFailed",
    "CheckResult",
    "ValidationExpectations",
    "ValidationSuite",
    "format_summary",
    "run_validation_suite",
    "validation_check",
]
