"""Shared domain models for n8n-deployer."""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from n8ndeployer.constants import (
    APP_LOOPBACK_URL,
    READINESS_ACCEPTED_STATUS_CODES,
    READINESS_INTERVAL_SECONDS,
    READINESS_MAX_ATTEMPTS,
)
from n8ndeployer.errors import ToolInvocationError

SAFE_TO_RERUN = "safe-to-rerun"
DESTRUCTIVE_ONCE = "destructive-once"

POLICY_ABORT = "abort"
POLICY_CONTINUE = "continue"
POLICY_WARN = "warn"

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_WARNING = "warning"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class DeploymentConfig:
    """Resolved deployment parameters, built once per run."""

    domain: str
    admin_user: str
    project_dir: str
    db_password: str = field(repr=False)
    app_password: str = field(repr=False)


@dataclass(frozen=True)
class ReadinessCheck:
    url: str = APP_LOOPBACK_URL
    max_attempts: int = READINESS_MAX_ATTEMPTS
    interval_seconds: float = READINESS_INTERVAL_SECONDS
    accepted_status_codes: Tuple[int, ...] = READINESS_ACCEPTED_STATUS_CODES


@dataclass(frozen=True)
class ProvisioningStep:
    """A named side-effecting unit of work against an external tool."""

    name: str
    description: str
    action: Callable[[], Any]
    idempotency: str = SAFE_TO_RERUN
    failure_policy: str = POLICY_ABORT
    requires: Tuple[str, ...] = ()
    success_message: Optional[str] = None


@dataclass(frozen=True)
class StepOutcome:
    name: str
    status: str
    error: Optional[Exception] = None


@dataclass
class RunReport:
    """Outcomes of a step run in execution order."""

    outcomes: List[StepOutcome] = field(default_factory=list)
    aborted_at: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.aborted_at is not None

    @property
    def failed_steps(self) -> List[str]:
        return [outcome.name for outcome in self.outcomes if outcome.status == STATUS_FAILED]

    @property
    def warnings(self) -> List[StepOutcome]:
        return [
            outcome
            for outcome in self.outcomes
            if outcome.status in (STATUS_WARNING, STATUS_SKIPPED)
        ]

    @property
    def exit_code(self) -> int:
        """Process exit status taken from the first failed step."""
        for outcome in self.outcomes:
            if outcome.status != STATUS_FAILED:
                continue
            if isinstance(outcome.error, ToolInvocationError) and outcome.error.returncode:
                return outcome.error.returncode
            return 1
        return 0

    def succeeded(self, step_name: str) -> bool:
        return any(
            outcome.name == step_name and outcome.status == STATUS_SUCCESS
            for outcome in self.outcomes
        )
