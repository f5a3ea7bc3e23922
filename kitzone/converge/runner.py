"""Converge runner executing the provisioning steps in order, fail-fast."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence
from uuid import uuid4

from .. import system
from ..models import ExecutionContext, RunRecord, RunState, StageEvent
from ..rendering import SummaryRenderer
from ..reporting import FatalProvisioningError, Reporter
from ..runtime.docker import DockerCli
from ..runtime.executor import CommandRunner
from .services import service_step
from .steps import (
    ProvisioningStep,
    StepEnvironment,
    create_network,
    fix_hostname,
    install_docker,
    install_prerequisites,
    print_summary,
)

log = logging.getLogger(__name__)

PRIVILEGE_MESSAGE = (
    "This script must be run as root. Please use 'sudo kitzone-setup'."
)


def build_steps(context: ExecutionContext) -> List[ProvisioningStep]:
    """Return the provisioning sequence in execution order."""
    return [
        ProvisioningStep(
            "hostname",
            f"Fixing hostname resolution in {context.hosts_file}...",
            fix_hostname,
        ),
        ProvisioningStep(
            "prerequisites",
            "Updating system packages and installing prerequisites...",
            install_prerequisites,
        ),
        ProvisioningStep(
            "docker",
            "Installing Docker Engine and Docker Compose Plugin...",
            install_docker,
        ),
        ProvisioningStep(
            "network",
            f"Creating Docker network '{context.network_name}' if it doesn't exist...",
            create_network,
        ),
        *(service_step(service) for service in context.services.deployed()),
        ProvisioningStep("summary", "Gathering access details...", print_summary),
    ]


@dataclass
class ProvisionRunner:
    env: StepEnvironment
    steps: Sequence[ProvisioningStep]
    privileged: Callable[[], bool] = system.is_privileged
    last_run: Optional[RunRecord] = field(default=None, init=False)

    @classmethod
    def build(
        cls,
        context: ExecutionContext,
        reporter: Optional[Reporter] = None,
        runner: Optional[CommandRunner] = None,
    ) -> "ProvisionRunner":
        runner = runner or CommandRunner()
        env = StepEnvironment(
            context=context,
            runner=runner,
            docker=DockerCli(runner),
            reporter=reporter or Reporter(),
            renderer=SummaryRenderer(),
        )
        return cls(env=env, steps=build_steps(context))

    def run(self, run_id: Optional[str] = None) -> RunRecord:
        """Run every step; raises FatalProvisioningError on the first failure."""
        record = RunRecord(run_id=run_id or str(uuid4()))
        self.last_run = record
        reporter = self.env.reporter

        if not self.privileged():
            record.state = RunState.aborted
            self._record(record, "precheck", "failed", PRIVILEGE_MESSAGE)
            reporter.fatal(PRIVILEGE_MESSAGE, step="precheck")

        reporter.console.print(self.env.renderer.banner(self.env.context))
        record.state = RunState.running

        for step in self.steps:
            record.current_step = step.name
            self._record(record, step.name, "started")
            reporter.info(step.description)
            try:
                result = step.run(self.env)
            except FatalProvisioningError:
                raise
            except Exception as exc:
                log.debug("Step %s raised", step.name, exc_info=True)
                record.state = RunState.aborted
                record.failed_step = step.name
                message = f"Unexpected error: {exc.__class__.__name__}: {exc}"
                self._record(record, step.name, "failed", message)
                reporter.fatal(message, step=step.name, cause=exc)

            if result.status == "failed":
                record.state = RunState.aborted
                record.failed_step = step.name
                self._record(record, step.name, "failed", result.detail)
                reporter.fatal(
                    result.detail,
                    step=step.name,
                    command=result.command,
                    output=result.output,
                )

            if result.status == "skipped":
                self._record(record, step.name, "skipped", result.detail)
                if result.warn:
                    reporter.warning(result.detail)
                else:
                    reporter.success(result.detail)
            else:
                self._record(record, step.name, "ok", result.detail or None)
                if result.detail:
                    reporter.success(result.detail)

        record.current_step = None
        record.state = RunState.succeeded
        skipped = [e.stage for e in record.events if e.status == "skipped"]
        record.summary = f"{len(self.steps)} steps completed"
        if skipped:
            record.summary += f"; skipped {', '.join(skipped)}"
        return record

    @staticmethod
    def _record(
        record: RunRecord,
        stage: str,
        status: str,
        detail: Optional[str] = None,
    ) -> None:
        record.events.append(StageEvent(stage=stage, status=status, detail=detail))
