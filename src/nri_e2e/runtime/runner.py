"""Scenario runner.

Each scenario goes through:

    before commands -> agent set up -> agent run -> assertions (retried)
    -> after commands -> agent stop

Scenarios run one at a time; the first failing scenario ends the run.
"""

from __future__ import annotations

import random
import string
import time
from pathlib import Path
from typing import Callable, Protocol

from ..errors import E2EError, RetriesExhaustedError
from ..shared.logging import get_logger
from ..spec import Definition, Scenario, Tests
from .commands import CommandRunner
from .retrier import retry

logger = get_logger(__name__)

SCENARIO_TAG_PREFIX = "e2e-"
SCENARIO_TAG_SUFFIX_LENGTH = 5
SHORT_SHA_LENGTH = 7


class Tester(Protocol):
    def test(self, tests: Tests, tag_key: str, tag_value: str) -> list[E2EError]: ...


class Agent(Protocol):
    def set_up(self, scenario: Scenario) -> None: ...

    def run(self, scenario_tag: str) -> None: ...

    def stop(self) -> None: ...


def generate_scenario_tag(commit_sha: str, rng: random.Random) -> str:
    """Build "e2e-<short sha>-<random letters>".

    Shas shorter than 7 characters (local runs) are padded with zeros.
    """
    if len(commit_sha) < SHORT_SHA_LENGTH:
        commit_sha = commit_sha + "0" * SHORT_SHA_LENGTH
    suffix = "".join(
        rng.choice(string.ascii_lowercase) for _ in range(SCENARIO_TAG_SUFFIX_LENGTH)
    )
    return f"{SCENARIO_TAG_PREFIX}{commit_sha[:SHORT_SHA_LENGTH]}-{suffix}"


class Runner:
    """Runs every scenario of a definition against an agent."""

    def __init__(
        self,
        definition: Definition,
        testers: list[Tester],
        agent: Agent | None = None,
        commands: CommandRunner | None = None,
        spec_parent_dir: str | Path = ".",
        retry_attempts: int = 1,
        retry_seconds: float = 0,
        commit_sha: str = "",
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize runner.

        Args:
            definition: Parsed spec definition
            testers: Testers evaluated, in order, after the agent is running
            agent: Agent environment, None when the agent is disabled
            commands: Runner for before/after commands
            spec_parent_dir: Working directory of the commands
            retry_attempts: Attempts per tester
            retry_seconds: Delay between attempts
            commit_sha: Commit the tags are derived from
            rng: Random source for tag suffixes, seeded once per process
            sleep: Sleep function, injectable for tests
        """
        self.definition = definition
        self.testers = testers
        self.agent = agent
        self.commands = commands or CommandRunner()
        self.spec_parent_dir = Path(spec_parent_dir)
        self.retry_attempts = max(retry_attempts, 0)
        self.retry_seconds = max(retry_seconds, 0)
        self.commit_sha = commit_sha
        self.rng = rng or random.Random()
        self.sleep = sleep

    def generate_scenario_tag(self) -> str:
        return generate_scenario_tag(self.commit_sha, self.rng)

    def run(self) -> None:
        """Run all scenarios.

        Raises:
            CommandError: A before command failed
            InfrastructureError: The agent failed to set up, run or stop
            RetriesExhaustedError: Assertions still failed after every retry
        """
        for scenario in self.definition.scenarios:
            self.run_scenario(scenario)

    def run_scenario(self, scenario: Scenario) -> None:
        scenario_tag = self.generate_scenario_tag()
        log = logger.bind(scenario=scenario.description.strip(), tag=scenario_tag)
        log.info("running scenario")

        self.commands.run_all(scenario.before, self.spec_parent_dir, scenario_tag)

        if self.agent is not None:
            self.agent.set_up(scenario)
            self.agent.run(scenario_tag)

        try:
            assertions_error = self.execute_tests(scenario.tests, scenario_tag)
        finally:
            self.tear_down(scenario, scenario_tag)

        if assertions_error is not None:
            log.error("scenario failed", error=str(assertions_error))
            raise assertions_error

        log.info("scenario passed")

    def tear_down(self, scenario: Scenario, scenario_tag: str) -> None:
        """Run after commands, then stop the agent.

        After command failures are logged; agent stop failures are raised.
        """
        try:
            self.commands.run_all(scenario.after, self.spec_parent_dir, scenario_tag)
        except E2EError as e:
            logger.error("after command failed", tag=scenario_tag, error=str(e))

        if self.agent is not None:
            self.agent.stop()

    def execute_tests(self, tests: Tests, scenario_tag: str) -> RetriesExhaustedError | None:
        """Run each tester under its own retry budget.

        Returns:
            The error of the first tester that never passed, None if all passed
        """
        tag_key = self.definition.custom_test_key
        for tester in self.testers:
            logger.debug("running tester", tester=type(tester).__name__)
            error = retry(
                self.retry_attempts,
                self.retry_seconds,
                lambda t=tester: t.test(tests, tag_key, scenario_tag),
                sleep=self.sleep,
            )
            if error is not None:
                return error
        return None
