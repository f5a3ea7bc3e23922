"""Idempotency checks: read-only predicates telling whether a step is done."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path

from . import constants
from .runtime.docker import DockerCli
from .runtime.executor import CommandRunner

log = logging.getLogger(__name__)


def hostname_resolves(hosts_file: Path, hostname: str) -> bool:
    """True when a ``127.0.0.1`` line in the hosts file lists ``hostname``."""
    try:
        content = hosts_file.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return False
    for line in content.splitlines():
        entry = line.split("#", 1)[0].split()
        if entry and entry[0] == constants.LOOPBACK_ADDRESS and hostname in entry[1:]:
            return True
    return False


def runtime_installed(runner: CommandRunner, binary: str = "docker") -> bool:
    """True when docker is on PATH and its compose sub-command answers."""
    if shutil.which(binary) is None:
        return False
    return DockerCli(runner, binary).compose_version().ok


def network_exists(docker: DockerCli, name: str) -> bool:
    result = docker.list_networks(name)
    if not result.ok:
        log.debug("Network query failed: %s", result.detail)
        return False
    # the name filter matches substrings, so compare whole names
    return name in result.lines()


def container_exists(docker: DockerCli, name: str) -> bool:
    """True when a container named ``name`` exists, running or stopped."""
    result = docker.list_containers(name)
    if not result.ok:
        log.debug("Container query failed: %s", result.detail)
        return False
    return name in result.lines()
