"""Start-up dependency probing and readiness state."""

import enum
import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

DependencyCheck = Callable[[], None]


class ReadinessState(str, enum.Enum):
    """Lifecycle of the start-up dependency gate."""

    NOT_CHECKED = "not_checked"
    HEALTHY = "healthy"
    DEGRADED = "degraded"


@dataclass
class CheckResult:
    """Outcome of one named dependency check."""

    name: str
    healthy: bool
    elapsed_ms: float
    error: str | None = None


@dataclass
class ReadinessReport:
    """Outcome of one pass over all dependency checks."""

    results: list[CheckResult] = field(default_factory=list)
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def all_healthy(self) -> bool:
        return all(r.healthy for r in self.results)

    def unhealthy(self) -> list[str]:
        return [r.name for r in self.results if not r.healthy]


def database_check(engine: Engine) -> DependencyCheck:
    """Build a check that runs ``SELECT 1`` against the engine."""

    def check_database() -> None:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    return check_database


class DependencyChecker:
    """
    Run an explicit list of dependency checks once at process start.

    The state moves from NOT_CHECKED to HEALTHY or DEGRADED exactly once;
    later calls to ``run`` return the cached state.
    """

    def __init__(
        self,
        checks: Sequence[tuple[str, DependencyCheck]],
        max_retries: int = 30,
        retry_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._checks = list(checks)
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._lock = threading.Lock()
        self._state = ReadinessState.NOT_CHECKED
        self.last_report: ReadinessReport | None = None

    @property
    def state(self) -> ReadinessState:
        return self._state

    def check_once(self) -> ReadinessReport:
        """Run every check a single time."""
        report = ReadinessReport()
        for name, check in self._checks:
            started = time.perf_counter()
            try:
                check()
            except Exception as exc:
                elapsed = (time.perf_counter() - started) * 1000
                logger.warning("Dependency check %s failed: %s", name, exc)
                report.results.append(CheckResult(name, False, elapsed, str(exc)))
            else:
                elapsed = (time.perf_counter() - started) * 1000
                report.results.append(CheckResult(name, True, elapsed))
        return report

    def run(self) -> ReadinessState:
        """Probe dependencies with retries and settle the readiness state."""
        with self._lock:
            if self._state is not ReadinessState.NOT_CHECKED:
                return self._state

            logger.info("Starting dependency check for %d services", len(self._checks))
            for attempt in range(1, self._max_retries + 1):
                report = self.check_once()
                self.last_report = report
                if report.all_healthy:
                    logger.info("All dependencies are healthy")
                    self._state = ReadinessState.HEALTHY
                    return self._state

                logger.warning(
                    "Unhealthy services: %s. Retry %d/%d",
                    ", ".join(report.unhealthy()),
                    attempt,
                    self._max_retries,
                )
                if attempt < self._max_retries:
                    self._sleep(self._retry_delay)

            logger.error("Maximum dependency check retries exceeded, running degraded")
            self._state = ReadinessState.DEGRADED
            return self._state

    def skip(self) -> ReadinessState:
        """Mark dependencies healthy without probing (checks disabled)."""
        with self._lock:
            if self._state is ReadinessState.NOT_CHECKED:
                self._state = ReadinessState.HEALTHY
            return self._state
