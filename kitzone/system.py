"""System facts queried from the host.

Nothing here is cached: every call re-reads the host so that a step always
sees the state left behind by the previous one.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import socket
from pathlib import Path
from typing import Optional

import httpx

from .runtime.executor import CommandRunner

log = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")


def is_privileged() -> bool:
    """Return True when running with an effective uid of root."""
    return os.geteuid() == 0


def current_hostname() -> str:
    return socket.gethostname()


def dpkg_architecture(runner: CommandRunner) -> Optional[str]:
    """Return the Debian architecture name, e.g. ``amd64``."""
    result = runner.execute(["dpkg", "--print-architecture"])
    if not result.ok:
        return None
    return result.stdout.strip() or None


def distribution_codename(
    runner: CommandRunner, os_release: Optional[Path] = None
) -> Optional[str]:
    """Return the distribution codename from lsb_release, else /etc/os-release."""
    result = runner.execute(["lsb_release", "-cs"])
    if result.ok and result.stdout.strip():
        return result.stdout.strip()
    os_release = os_release or OS_RELEASE
    log.debug("lsb_release unavailable (%s), reading %s", result.detail, os_release)
    return _os_release_codename(os_release)


def _os_release_codename(os_release: Path) -> Optional[str]:
    try:
        content = os_release.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    values: dict[str, str] = {}
    for line in content.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip().strip('"').strip("'")
    return values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME") or None


def local_address(runner: CommandRunner) -> Optional[str]:
    """Return the first address reported by ``hostname -I``."""
    result = runner.execute(["hostname", "-I"])
    if not result.ok:
        return None
    for candidate in result.stdout.split():
        if _is_ip(candidate):
            return candidate
    return None


def public_address(url: str, timeout: float) -> Optional[str]:
    """Best-effort external address lookup; returns None on any failure."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log.debug("Public address lookup via %s failed: %s", url, exc)
        return None
    candidate = response.text.strip()
    return candidate if _is_ip(candidate) else None


def resolve_host_address(runner: CommandRunner, url: str, timeout: float) -> str:
    """Public address, falling back to the local address, then loopback."""
    return public_address(url, timeout) or local_address(runner) or "127.0.0.1"


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True
