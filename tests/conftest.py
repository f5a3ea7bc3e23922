"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence, Set, Tuple

import httpx
import pytest
from rich.console import Console
from unittest.mock import patch

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from kitzone.converge.runner import ProvisionRunner
from kitzone.models import ExecutionContext
from kitzone.reporting import Reporter
from kitzone.runtime.executor import CommandResult, CommandRunner

HOSTNAME = "kitzone-box"
PUBLIC_IP = "203.0.113.7"


class FakeHost(CommandRunner):
    """In-memory host answering the commands the provisioning steps run.

    State changes the way the real host would, so running the whole
    sequence twice exercises every idempotency check.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Tuple[str, ...]] = []
        self.docker_installed = False
        self.packages: Set[str] = set()
        self.networks: Set[str] = set()
        self.volumes: Set[str] = set()
        self.containers: Set[str] = set()
        self.failures: Dict[Tuple[str, ...], Tuple[int, str]] = {}

    def fail(self, prefix: Sequence[str], returncode: int = 1, stderr: str = "boom") -> None:
        """Make every command starting with ``prefix`` fail."""
        self.failures[tuple(prefix)] = (returncode, stderr)

    def calls_starting(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[: len(prefix)] == prefix]

    def execute(self, command: Sequence[str], *, input: Optional[str] = None) -> CommandResult:
        argv = tuple(str(part) for part in command)
        self.calls.append(argv)
        for prefix, (returncode, stderr) in self.failures.items():
            if argv[: len(prefix)] == prefix:
                return CommandResult(argv, returncode, "", stderr)
        return self._dispatch(argv, input)

    def _dispatch(self, argv: Tuple[str, ...], input: Optional[str]) -> CommandResult:
        def ok(stdout: str = "") -> CommandResult:
            return CommandResult(argv, 0, stdout, "")

        head = argv[:2]

        if argv[0] == "apt-get":
            if argv[1] == "install":
                installed = [arg for arg in argv[2:] if not arg.startswith("-")]
                self.packages.update(installed)
                if "docker-ce" in installed:
                    self.docker_installed = True
            return ok()
        if argv[0] == "gpg":
            Path(argv[argv.index("-o") + 1]).write_bytes(b"dearmored:" + (input or "").encode())
            return ok()
        if argv == ("dpkg", "--print-architecture"):
            return ok("amd64\n")
        if argv == ("lsb_release", "-cs"):
            return ok("jammy\n")
        if argv[0] == "systemctl":
            return ok()
        if argv == ("hostname", "-I"):
            return ok("10.0.0.5 172.17.0.1 \n")
        if argv[0] != "docker" or not self.docker_installed:
            return CommandResult(argv, 127, "", f"{argv[0]}: command not found")

        if head == ("docker", "compose"):
            return ok("Docker Compose version v2.27.0\n")
        if argv[1:3] == ("network", "ls"):
            needle = argv[argv.index("--filter") + 1].split("=", 1)[1]
            return ok("".join(f"{n}\n" for n in sorted(self.networks) if needle in n))
        if argv[1:3] == ("network", "create"):
            name = argv[3]
            if name in self.networks:
                return CommandResult(
                    argv, 1, "", f"Error response from daemon: network with name {name} already exists"
                )
            self.networks.add(name)
            return ok(f"{name}-id\n")
        if argv[1:3] == ("volume", "create"):
            self.volumes.add(argv[3])
            return ok(f"{argv[3]}\n")
        if argv[1:3] == ("ps", "-a"):
            pattern = argv[argv.index("--filter") + 1].split("=", 1)[1]
            name = pattern.removeprefix("^/").removesuffix("$")
            return ok(f"{name}\n" if name in self.containers else "")
        if argv[1] == "run":
            name = next(a.split("=", 1)[1] for a in argv if a.startswith("--name="))
            self.containers.add(name)
            return ok("0123456789ab\n")
        return CommandResult(argv, 1, "", f"unexpected docker call: {argv}")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def context(temp_dir: Path) -> ExecutionContext:
    """Default context with every host path redirected into temp_dir."""
    hosts = temp_dir / "etc" / "hosts"
    hosts.parent.mkdir(parents=True)
    hosts.write_text("127.0.0.1 localhost\n::1 localhost ip6-localhost\n")

    base = ExecutionContext()
    letsencrypt = temp_dir / "opt" / "npm" / "letsencrypt"
    proxy = base.services.proxy.model_copy(update={"host_dirs": (letsencrypt,)})
    return base.model_copy(
        update={
            "hosts_file": hosts,
            "keyring_path": temp_dir / "etc" / "apt" / "keyrings" / "docker.gpg",
            "apt_source_path": temp_dir / "etc" / "apt" / "sources.list.d" / "docker.list",
            "services": base.services.model_copy(update={"proxy": proxy}),
        }
    )


@pytest.fixture
def reporter() -> Reporter:
    """Reporter writing plain text into a buffer."""
    console = Console(file=io.StringIO(), width=400, color_system=None, force_terminal=False)
    return Reporter(console)


@pytest.fixture
def fake_host() -> Generator[FakeHost, None, None]:
    """Fake host plus patched hostname, PATH lookup and HTTP endpoints."""
    host = FakeHost()

    def which(binary: str) -> Optional[str]:
        return f"/usr/bin/{binary}" if host.docker_installed else None

    def http_get(url: str, **kwargs) -> httpx.Response:
        return httpx.Response(200, text=f"{PUBLIC_IP}\n", request=httpx.Request("GET", url))

    def key_download(func, url: str, **kwargs) -> httpx.Response:
        return httpx.Response(
            200,
            text="-----BEGIN PGP PUBLIC KEY BLOCK-----\n",
            request=httpx.Request("GET", url),
        )

    with patch("kitzone.system.socket.gethostname", return_value=HOSTNAME), \
            patch("kitzone.checks.shutil.which", side_effect=which), \
            patch("kitzone.system.httpx.get", side_effect=http_get), \
            patch("kitzone.converge.steps.retry_request", side_effect=key_download):
        yield host


@pytest.fixture
def provision_runner(
    context: ExecutionContext, fake_host: FakeHost, reporter: Reporter
) -> ProvisionRunner:
    runner = ProvisionRunner.build(context, reporter=reporter, runner=fake_host)
    runner.privileged = lambda: True
    return runner
