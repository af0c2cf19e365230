# ============================================================================
# MODULE CONTEXT - SERVICE VALIDATOR RESULTS
# ============================================================================
# STATUS: Standalone Models - check and suite results
# EXPORTS: CheckResult, ValidationSuite
# DEPENDENCIES: dataclasses
# ============================================================================

"""Result records of the validation suite."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CheckResult:
    """Result of a single validation check."""
    name: str
    passed: bool
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    duration_ms: float = 0.0
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "name": self.name,
            "passed": self.passed,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp
        }
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class ValidationSuite:
    """Aggregated outcome of one suite run."""
    name: str
    base_url: str
    results: List[CheckResult]
    execution_time_ms: float

    @property
    def total_tests(self) -> int:
        return len(self.results)

    @property
    def passed_tests(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_tests(self) -> int:
        return self.total_tests - self.passed_tests

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks (0 when nothing ran)."""
        if not self.results:
            return 0.0
        return self.passed_tests / self.total_tests * 100

    @property
    def all_passed(self) -> bool:
        return bool(self.results) and self.failed_tests == 0

    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "base_url": self.base_url,
            "total_tests": self.total_tests,
            "passed_tests": self.passed_tests,
            "failed_tests": self.failed_tests,
            "success_rate": round(self.success_rate, 1),
            "execution_time_ms": round(self.execution_time_ms, 2),
            "results": [r.to_dict() for r in self.results]
        }
