"""Leveled operator-facing messages and the fatal abort path."""
from __future__ import annotations

import logging
from typing import NoReturn, Optional

from rich.console import Console
from rich.text import Text

log = logging.getLogger("kitzone")


class FatalProvisioningError(Exception):
    """Raised once a provisioning failure has been reported to the operator.

    Only the entry point catches it; it converts the error into a non-zero
    exit status so that no later step runs.
    """

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        command: Optional[str] = None,
        output: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.command = command
        self.output = output


class Reporter:
    """Writes INFO/SUCCESS/WARNING/ERROR lines to the operator console.

    Each message is also logged at DEBUG, so a log handler on stderr does not
    repeat it at the default level.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def info(self, message: str) -> None:
        log.debug(message)
        self.console.print(Text(f"INFO: {message}", style="blue"))

    def success(self, message: str) -> None:
        log.debug(message)
        self.console.print(Text(f"SUCCESS: {message}", style="green"))

    def warning(self, message: str) -> None:
        log.debug(message)
        self.console.print(Text(f"WARNING: {message}", style="bold yellow"))

    def fatal(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        command: Optional[str] = None,
        output: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """Report an unrecoverable failure and abort the run."""
        log.debug("%s (step=%s, command=%s)", message, step, command)
        block = Text()
        block.append(f"\nERROR: {message}\n", style="bold red")
        if step:
            block.append(f"  step:    {step}\n", style="red")
        if command:
            block.append(f"  command: {command}\n", style="red")
        if output:
            block.append("  output:\n", style="red")
            for line in output.strip().splitlines():
                block.append(f"    {line}\n")
        self.console.print(block)
        error = FatalProvisioningError(message, step=step, command=command, output=output)
        if cause is not None:
            raise error from cause
        raise error
