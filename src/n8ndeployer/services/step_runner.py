"""Ordered provisioning step execution."""

from typing import Sequence

from n8ndeployer.errors import DeployerError
from n8ndeployer.models import (
    POLICY_ABORT,
    POLICY_WARN,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    STATUS_WARNING,
    ProvisioningStep,
    RunReport,
    StepOutcome,
)


class StepRunner:
    """Runs steps in order and stops at the first failure of an ``abort`` step.

    Nothing is rolled back. Steps that already ran stay applied so the host can
    be inspected and the deployer rerun after manual remediation.
    """

    def __init__(self, status, logger):
        self.status = status
        self.logger = logger

    def run(self, steps: Sequence[ProvisioningStep]) -> RunReport:
        report = RunReport()
        total = len(steps)

        for index, step in enumerate(steps, start=1):
            missing = [name for name in step.requires if not report.succeeded(name)]
            if missing:
                self.status.warning(
                    f"Skipping step {index}/{total} ({step.name}): "
                    f"requires {', '.join(missing)}."
                )
                report.outcomes.append(StepOutcome(step.name, STATUS_SKIPPED))
                continue

            self.status.info(f"Step {index}/{total}: {step.description}...")
            self.logger.debug("Running step %s (%s)", step.name, step.idempotency)

            try:
                step.action()
            except DeployerError as exc:
                if step.failure_policy == POLICY_WARN:
                    self.status.warning(str(exc))
                    report.outcomes.append(StepOutcome(step.name, STATUS_WARNING, exc))
                    continue

                self.status.error(str(exc))
                report.outcomes.append(StepOutcome(step.name, STATUS_FAILED, exc))
                if step.failure_policy == POLICY_ABORT:
                    report.aborted_at = step.name
                    break
                continue

            self.status.success(step.success_message or f"{step.description} completed")
            report.outcomes.append(StepOutcome(step.name, STATUS_SUCCESS))

        return report
