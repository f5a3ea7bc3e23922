"""Provisioning steps run in a fixed order by the converge runner.

Each step inspects the host first and returns ``StepResult.skipped`` when
its work is already done, so a full re-run after a failure only repeats
what is missing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .. import checks, constants, system
from ..models import ExecutionContext, StepResult
from ..rendering import SummaryRenderer
from ..reporting import Reporter
from ..retry import retry_request
from ..runtime.docker import DockerCli
from ..runtime.executor import CommandRunner

KEY_DOWNLOAD_TIMEOUT = 30.0


@dataclass
class StepEnvironment:
    """Collaborators handed to every step; the context is read-only."""

    context: ExecutionContext
    runner: CommandRunner
    docker: DockerCli
    reporter: Reporter
    renderer: SummaryRenderer


@dataclass(frozen=True)
class ProvisioningStep:
    name: str
    description: str
    run: Callable[[StepEnvironment], StepResult]


def fix_hostname(env: StepEnvironment) -> StepResult:
    hosts_file = env.context.hosts_file
    hostname = system.current_hostname()
    if checks.hostname_resolves(hosts_file, hostname):
        return StepResult.skipped("Hostname resolution is already correct.")

    entry = f"{constants.LOOPBACK_ADDRESS} {hostname}\n"
    try:
        existing = ""
        if hosts_file.exists():
            existing = hosts_file.read_text(encoding="utf-8", errors="replace")
        with hosts_file.open("a", encoding="utf-8") as handle:
            if existing and not existing.endswith("\n"):
                handle.write("\n")
            handle.write(entry)
    except OSError as exc:
        return StepResult.failed(f"Could not update {hosts_file}: {exc}")
    return StepResult.succeeded(f"Hostname {hostname} added to {hosts_file}.")


def install_prerequisites(env: StepEnvironment) -> StepResult:
    for command, done in (
        (["apt-get", "update", "-y"], "System packages updated."),
        (["apt-get", "upgrade", "-y"], "System packages upgraded."),
    ):
        result = env.runner.execute(command)
        if not result.ok:
            return StepResult.from_command(result, f"'{result.display}' failed.")
        env.reporter.info(done)

    packages = env.context.apt_packages
    result = env.runner.execute(["apt-get", "install", "-y", *packages])
    if not result.ok:
        return StepResult.from_command(
            result, f"Failed to install general prerequisites: {' '.join(packages)}"
        )
    return StepResult.succeeded("Prerequisites installed successfully.")


def install_docker(env: StepEnvironment) -> StepResult:
    if checks.runtime_installed(env.runner):
        return StepResult.skipped("Docker and Docker Compose Plugin are already installed.")

    for prepare in (add_signing_key, add_repository):
        failure = prepare(env)
        if failure is not None:
            return failure

    result = env.runner.execute(["apt-get", "update", "-y"])
    if not result.ok:
        return StepResult.from_command(result, f"'{result.display}' failed.")

    result = env.runner.execute(["apt-get", "install", "-y", *env.context.docker_packages])
    if not result.ok:
        return StepResult.from_command(result, "Failed to install Docker components.")

    for action in ("enable", "start"):
        result = env.runner.execute(["systemctl", action, "docker"])
        if not result.ok:
            return StepResult.from_command(result, f"Failed to {action} the docker service.")
    return StepResult.succeeded("Docker and Docker Compose Plugin installed and running.")


def add_signing_key(env: StepEnvironment) -> Optional[StepResult]:
    """Download Docker's GPG key and store it de-armored in the apt keyring."""
    keyring = env.context.keyring_path
    url = env.context.docker_gpg_url
    try:
        keyring.parent.mkdir(parents=True, exist_ok=True)
        keyring.parent.chmod(0o755)
    except OSError as exc:
        return StepResult.failed(f"Could not create {keyring.parent}: {exc}")

    try:
        with httpx.Client(timeout=KEY_DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
            response = retry_request(client.get, url)
            response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return StepResult.failed(
            "Failed to download Docker GPG key.", command=f"GET {url}", output=str(exc)
        )

    result = env.runner.execute(
        ["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring)],
        input=response.text,
    )
    if not result.ok:
        return StepResult.from_command(result, "Failed to import Docker GPG key.")

    try:
        keyring.chmod(keyring.stat().st_mode | 0o444)
    except OSError as exc:
        return StepResult.failed(f"Could not make {keyring} readable: {exc}")
    return None


def add_repository(env: StepEnvironment) -> Optional[StepResult]:
    arch = system.dpkg_architecture(env.runner)
    if arch is None:
        return StepResult.failed(
            "Could not determine the system architecture.",
            command="dpkg --print-architecture",
        )
    codename = system.distribution_codename(env.runner)
    if codename is None:
        return StepResult.failed(
            "Could not determine the distribution codename.", command="lsb_release -cs"
        )

    source = env.context.apt_source_path
    try:
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_text(apt_source_line(env.context, arch, codename) + "\n")
    except OSError as exc:
        return StepResult.failed(f"Could not write {source}: {exc}")
    return None


def apt_source_line(context: ExecutionContext, arch: str, codename: str) -> str:
    return (
        f"deb [arch={arch} signed-by={context.keyring_path}] "
        f"{context.docker_repo_url} {codename} stable"
    )


def create_network(env: StepEnvironment) -> StepResult:
    name = env.context.network_name
    if checks.network_exists(env.docker, name):
        return StepResult.skipped(f"Docker network '{name}' already exists.")

    result = env.docker.create_network(name)
    if result.ok or DockerCli.already_exists(result):
        return StepResult.succeeded(f"Docker network '{name}' created.")
    return StepResult.from_command(result, f"Failed to create Docker network '{name}'.")


def print_summary(env: StepEnvironment) -> StepResult:
    context = env.context
    address = system.resolve_host_address(
        env.runner, context.ip_lookup_url, context.ip_lookup_timeout
    )
    env.reporter.console.print(env.renderer.summary(context, address))
    return StepResult.succeeded()

