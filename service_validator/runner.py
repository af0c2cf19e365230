# ============================================================================
# MODULE CONTEXT - SERVICE VALIDATOR RUNNER
# ============================================================================
# STATUS: Standalone Module - runs every check and aggregates the results
# EXPORTS: run_validation_suite, format_summary
# DEPENDENCIES: util_logger
# ============================================================================

"""Suite runner and text summary."""

import time
from typing import Iterable, Optional

from arcgis_features.client import FeatureClient
from util_logger import LoggerFactory, ComponentType

from .checks import ALL_CHECKS, CheckFunction
from .config import ValidationExpectations
from .models import CheckResult, ValidationSuite

logger = LoggerFactory.create_logger(ComponentType.VALIDATOR, "ServiceValidator")

SUITE_NAME = "ArcGIS Service Test Suite"
CONFIGURATION_CHECK = "Validator Configuration"


def _log_result(result: CheckResult) -> None:
    if result.passed:
        logger.info(
            f"✅ {result.name} ({result.duration_ms:.0f}ms)",
            extra={'custom_dimensions': {'check': result.name, 'passed': True}}
        )
    else:
        logger.error(
            f"❌ {result.name}: {result.error}",
            extra={'custom_dimensions': {'check': result.name, 'passed': False}}
        )


async def run_validation_suite(
    client: FeatureClient,
    expectations: Optional[ValidationExpectations] = None,
    checks: Iterable[CheckFunction] = ALL_CHECKS
) -> ValidationSuite:
    """
    Run the validation checks one after another against ``client``.

    Failures are recorded in the returned suite; this function does not
    raise for a failing check.

    Args:
        client: FeatureClient under test
        expectations: Expected dataset and thresholds (defaults from environment)
        checks: Checks to run, in order

    Returns:
        ValidationSuite with one CheckResult per check, or a single failed
        "Validator Configuration" result when the VALIDATOR_* environment
        cannot be parsed
    """
    logger.info(f"🧪 Starting {SUITE_NAME}...", extra={'custom_dimensions': {'base_url': client.base_url}})
    start = time.perf_counter()

    results = []
    if expectations is None:
        try:
            expectations = ValidationExpectations()
        except ValueError as e:
            result = CheckResult(
                name=CONFIGURATION_CHECK,
                passed=False,
                error=f"Invalid VALIDATOR_* environment: {type(e).__name__}: {e}"
            )
            _log_result(result)
            results.append(result)

    if expectations is not None:
        for check in checks:
            result = await check(client, expectations)
            _log_result(result)
            results.append(result)

    suite = ValidationSuite(
        name=SUITE_NAME,
        base_url=client.base_url,
        results=results,
        execution_time_ms=(time.perf_counter() - start) * 1000
    )

    logger.info(format_summary(suite), extra={'custom_dimensions': {
        'total_tests': suite.total_tests,
        'passed_tests': suite.passed_tests,
        'failed_tests': suite.failed_tests
    }})

    return suite


def format_summary(suite: ValidationSuite) -> str:
    """Human-readable summary of a suite run."""
    lines = [
        "=" * 60,
        f"📊 {suite.name.upper()} SUMMARY",
        "=" * 60,
        f"Results: {suite.passed_tests}/{suite.total_tests} tests passed",
        f"Success Rate: {suite.success_rate:.1f}%",
        f"Execution Time: {suite.execution_time_ms:.0f}ms",
    ]

    failures = suite.failures()
    if failures:
        lines.append("")
        lines.append("❌ Failed Tests:")
        for result in failures:
            lines.append(f"   - {result.name}: {result.error}")
    elif suite.results:
        lines.append("")
        lines.append("✅ All tests passed")

    lines.append("=" * 60)
    return "\n".join(lines)
