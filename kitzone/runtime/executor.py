"""Single point of contact for running commands on the host."""
from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

log = logging.getLogger(__name__)

# Exit statuses a shell reports for a missing or non-executable program
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


@dataclass(frozen=True)
class ExecutionError:
    """Why a command did not succeed."""

    exit_code: int
    stderr: str


@dataclass(frozen=True)
class CommandResult:
    """Captured exit status and output streams of one command."""

    command: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> Optional[ExecutionError]:
        if self.ok:
            return None
        return ExecutionError(exit_code=self.returncode, stderr=self.stderr.strip())

    @property
    def display(self) -> str:
        return shlex.join(self.command)

    @property
    def detail(self) -> str:
        error = self.error
        if error is None:
            return self.stdout.strip() or "ok"
        return error.stderr or self.stdout.strip() or f"failed (exit {error.exit_code})"

    def lines(self) -> list[str]:
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class CommandRunner:
    """Runs external commands synchronously and never raises past ``execute``."""

    def __init__(self, env: Optional[dict[str, str]] = None) -> None:
        self.env = env

    def execute(
        self,
        command: Sequence[str],
        *,
        input: Optional[str] = None,
    ) -> CommandResult:
        argv = tuple(str(part) for part in command)
        env = os.environ.copy()
        if self.env:
            env.update(self.env)
        env.setdefault("DEBIAN_FRONTEND", "noninteractive")
        log.debug("exec: %s", shlex.join(argv))
        try:
            process = subprocess.run(
                argv,
                env=env,
                input=input,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            result = CommandResult(argv, EXIT_NOT_FOUND, "", str(exc))
        except OSError as exc:
            result = CommandResult(argv, EXIT_NOT_EXECUTABLE, "", str(exc))
        else:
            result = CommandResult(
                argv,
                process.returncode,
                process.stdout or "",
                process.stderr or "",
            )
        log.debug("exit %d: %s", result.returncode, result.display)
        if not result.ok:
            log.debug("stderr: %s", result.stderr.strip())
        return result
