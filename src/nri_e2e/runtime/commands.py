"""Shell command execution for scenario before/after steps."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import TextIO

from ..errors import CommandError
from ..shared.logging import get_logger

logger = get_logger(__name__)

SCENARIO_TAG_ENV = "SCENARIO_TAG"


class CommandLogger:
    """Where the output of an executed command goes."""

    def write(self, command: str, output: str) -> None:
        raise NotImplementedError


class GHACommandLogger(CommandLogger):
    """Wraps command output in a GitHub Actions log group.

    https://docs.github.com/en/actions/using-workflows/workflow-commands-for-github-actions#grouping-log-lines
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream

    def write(self, command: str, output: str) -> None:
        stream = self.stream or sys.stderr
        stream.write(f"::group::{command}\n")
        if output:
            stream.write(output if output.endswith("\n") else output + "\n")
        stream.write("::endgroup::\n")
        stream.flush()


class StructlogCommandLogger(CommandLogger):
    """Forwards command output line by line to the structured logger."""

    def write(self, command: str, output: str) -> None:
        for line in output.splitlines():
            logger.info(line, command=command)


def command_logger(plain_logs: bool) -> CommandLogger:
    return StructlogCommandLogger() if plain_logs else GHACommandLogger()


class CommandRunner:
    """Runs shell statements with bash."""

    def __init__(self, output: CommandLogger | None = None):
        self.output = output or GHACommandLogger()

    def run(
        self, statement: str, cwd: str | Path, env: dict[str, str] | None = None
    ) -> None:
        """Run one statement.

        Args:
            statement: Shell statement, passed to `bash -c`
            cwd: Working directory
            env: Variables added to the current process environment

        Raises:
            CommandError: If bash is missing or the statement exits non-zero
        """
        logger.debug("execute command", command=statement, cwd=str(cwd))
        full_env = {**os.environ, **(env or {})}

        try:
            result = subprocess.run(
                ["bash", "-c", statement],
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise CommandError(
                f"executing command '{statement}': {e}", command=statement
            ) from e

        self.output.write(statement, result.stdout or "")

        if result.returncode != 0:
            raise CommandError(
                f"command '{statement}' exited with status {result.returncode}",
                command=statement,
                returncode=result.returncode,
            )

    def run_all(
        self, statements: list[str] | tuple[str, ...], cwd: str | Path, scenario_tag: str
    ) -> None:
        """Run statements in order with SCENARIO_TAG set, stopping at the first failure."""
        for statement in statements:
            self.run(statement, cwd, {SCENARIO_TAG_ENV: scenario_tag})
