"""Utilities for invoking docker commands."""
from __future__ import annotations

from typing import List

from ..models import ServiceSpec
from .executor import CommandResult, CommandRunner

ALREADY_EXISTS = "already exists"


class DockerCli:
    """Wrapper around the docker CLI for networks, volumes and containers."""

    def __init__(self, runner: CommandRunner, binary: str = "docker") -> None:
        self.runner = runner
        self.binary = binary

    def compose_version(self) -> CommandResult:
        return self._run(["compose", "version"])

    def list_networks(self, name: str) -> CommandResult:
        """List networks filtered by name; the filter is a substring match."""
        return self._run(["network", "ls", "--filter", f"name={name}", "--format", "{{.Name}}"])

    def list_containers(self, name: str) -> CommandResult:
        """List containers in any state whose name is exactly ``name``."""
        return self._run(
            ["ps", "-a", "--filter", f"name=^/{name}$", "--format", "{{.Names}}"]
        )

    def create_network(self, name: str) -> CommandResult:
        return self._run(["network", "create", name])

    def create_volume(self, name: str) -> CommandResult:
        return self._run(["volume", "create", name])

    def run_service(self, service: ServiceSpec, network: str) -> CommandResult:
        """Run `docker run -d` for a service with its fixed ports and volumes."""
        return self._run(self.run_arguments(service, network))

    @staticmethod
    def run_arguments(service: ServiceSpec, network: str) -> List[str]:
        command = [
            "run",
            "-d",
            f"--name={service.name}",
            f"--network={network}",
            f"--restart={service.restart_policy}",
        ]
        for port in service.ports:
            command.extend(["-p", port.as_flag()])
        for volume in service.volumes:
            command.extend(["-v", volume.as_flag()])
        command.append(service.image)
        return command

    @staticmethod
    def already_exists(result: CommandResult) -> bool:
        return not result.ok and ALREADY_EXISTS in result.stderr.lower()

    def _run(self, args: List[str]) -> CommandResult:
        return self.runner.execute([self.binary, *args])
