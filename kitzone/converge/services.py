"""Deployment of the long-running service containers."""
from __future__ import annotations

from functools import partial

from .. import checks
from ..models import ServiceSpec, StepResult
from ..runtime.docker import DockerCli
from .steps import ProvisioningStep, StepEnvironment


def deploy_service(env: StepEnvironment, service: ServiceSpec) -> StepResult:
    """Create host dirs and the data volume, then run the container once."""
    if checks.container_exists(env.docker, service.name):
        return StepResult.skipped(
            f"{service.name} container already exists. Skipping deployment.", warn=True
        )

    for directory in service.host_dirs:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return StepResult.failed(f"Could not create {directory}: {exc}")

    if service.named_volume:
        result = env.docker.create_volume(service.named_volume)
        if not result.ok and not DockerCli.already_exists(result):
            return StepResult.from_command(
                result, f"Failed to create Docker volume '{service.named_volume}'."
            )

    result = env.docker.run_service(service, env.context.network_name)
    if not result.ok:
        return StepResult.from_command(result, f"Failed to start the {service.name} container.")
    return StepResult.succeeded(f"{service.title} deployed on ports {service.port_list()}.")


def service_step(service: ServiceSpec) -> ProvisioningStep:
    return ProvisioningStep(
        name=service.name,
        description=f"Deploying {service.title}...",
        run=partial(deploy_service, service=service),
    )
