"""
Provisioning Orchestrator

Runs the plan's phases in strict order. A failing phase stops the run and
unwinds the compensations registered so far.
"""

import signal
from contextlib import contextmanager

from almadeploy.core.context import PhaseContext
from almadeploy.core.plan import DeploymentPlan
from almadeploy.exceptions import AlmaDeployError, HealthCheckTimeout
from almadeploy.models.deployment import DeploymentReport


def _raise_interrupt(signum, _frame):
    raise KeyboardInterrupt(f"Received signal {signum}")


@contextmanager
def terminate_as_interrupt():
    """Treat SIGTERM like Ctrl-C for the duration of the block."""
    try:
        previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    except ValueError:
        # Not on the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class DeploymentOrchestrator:
    """Executes a DeploymentPlan against a PhaseContext."""

    def __init__(self, plan: DeploymentPlan, context: PhaseContext):
        self.plan = plan
        self.context = context

    @property
    def logger(self):
        return self.context.logger

    @property
    def report(self) -> DeploymentReport:
        return self.context.report

    def execute(self) -> DeploymentReport:
        """
        Run every phase in order.

        Returns:
            DeploymentReport with one result per phase

        Raises:
            AlmaDeployError: First phase failure, after compensations ran
            HealthCheckTimeout: Health budget exhausted (no compensations)
            KeyboardInterrupt: On SIGINT/SIGTERM, after compensations ran
            Exception: Any other phase failure, after compensations ran
        """
        total = len(self.plan)
        with terminate_as_interrupt():
            for index, phase in enumerate(self.plan.phases, start=1):
                self.logger.step(f"[{index}/{total}] {phase.title}")
                try:
                    result = phase.run(self.context)
                except HealthCheckTimeout as e:
                    e.phase = phase.name
                    self.report.failed_phase = phase.name
                    self.report.healthy = False
                    self.logger.log_error(e.message, context=e.context)
                    raise
                except AlmaDeployError as e:
                    e.phase = phase.name
                    self._fail(phase.name, e.message, e.context)
                    raise
                except KeyboardInterrupt:
                    self._fail(phase.name, "Deployment interrupted", None)
                    raise
                except Exception as e:
                    self._fail(phase.name, f"{type(e).__name__}: {e}", None)
                    raise

                self.report.results.append(result)
                self.logger.log(f"Phase '{phase.name}' finished: {result.status.value}")

        return self.report

    def _fail(self, phase_name: str, message, context) -> None:
        self.report.failed_phase = phase_name
        self.logger.log_error(f"Phase '{phase_name}' failed: {message}", context=context)

        compensations = self.context.compensations
        if not len(compensations):
            return
        self.logger.warning(f"Rolling back {len(compensations)} change(s) from this run")
        failed = compensations.unwind(self.logger)
        if failed:
            self.logger.warning(
                f"{len(failed)} rollback action(s) failed; manual cleanup may be needed"
            )
