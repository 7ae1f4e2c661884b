"""Shared test fixtures for nri-e2e tests.

This module provides:
- FakeQueryClient: scripted query backend recording every NRQL it receives
- FakeAgent: agent collaborator recording lifecycle calls
- spec_dir: temporary directory holding a spec file and its companion files
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from nri_e2e.errors import InfrastructureError
from nri_e2e.newrelic import Entity

# =============================================================================
# Fake query client
# =============================================================================


@dataclass
class FakeQueryClient:
    """Query client answering from canned responses.

    responses maps a substring of the NRQL to either a list of rows, an
    exception to raise, or a callable returning one of those.
    """

    responses: dict[str, Any] = field(default_factory=dict)
    entities: dict[str, Entity | None] = field(default_factory=dict)
    queries: list[str] = field(default_factory=list)

    def query(self, account_id: int, nrql: str) -> list[dict[str, Any]]:
        self.queries.append(nrql)
        for fragment, response in self.responses.items():
            if fragment in nrql:
                if callable(response) and not isinstance(response, Exception):
                    response = response()
                if isinstance(response, Exception):
                    raise response
                return response
        return []

    def get_entity(self, guid: str) -> Entity | None:
        entity = self.entities.get(guid)
        if isinstance(entity, Exception):
            raise entity
        return entity


# =============================================================================
# Fake agent
# =============================================================================


@dataclass
class FakeAgent:
    """Agent collaborator that records calls, optionally failing one step."""

    calls: list[str] = field(default_factory=list)
    fail_on: str | None = None
    tags: list[str] = field(default_factory=list)

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise InfrastructureError(f"agent {name} failed")

    def set_up(self, scenario: Any) -> None:
        self._step("set_up")

    def run(self, scenario_tag: str) -> None:
        self.tags.append(scenario_tag)
        self._step("run")

    def stop(self) -> None:
        self._step("stop")


@pytest.fixture
def fake_client() -> FakeQueryClient:
    """Empty fake query client."""
    return FakeQueryClient()


@pytest.fixture
def fake_agent() -> FakeAgent:
    """Fake agent that never fails."""
    return FakeAgent()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    """Sleep replacement recording the requested delays."""
    delays: list[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays  # type: ignore[attr-defined]
    return sleep


SPEC_YAML = """
description: End-to-end tests for PowerDNS integration
custom_test_key: testKey
scenarios:
  - description: Scenario that tests the PowerDNS integration
    before:
      - echo before
    after:
      - echo after
    integrations:
      - name: nri-powerdns
        binary_path: bin/nri-powerdns
        config:
          api_url: http://localhost:8081/api/v1
        env:
          METRICS: "true"
    tests:
      nrqls:
        - query: "SELECT average(cpu) FROM Sample"
          expected_results:
            - key: "average.cpu"
              lowerBoundedValue: 5.0
              upperBoundedValue: 15.0
      entities:
        - type: POWERDNS_AUTHORITATIVE
          data_type: Metric
          metric_name: powerdns_authoritative_up
      metrics:
        - source: powerdns.yml
          except_metrics:
            - powerdns_authoritative_answers_bytes_total
"""

METRICS_YAML = """
entities:
  - entityType: POWERDNS_AUTHORITATIVE
    metrics:
      - name: powerdns_authoritative_up
      - name: powerdns_authoritative_answers_bytes_total
"""


@pytest.fixture
def spec_dir(tmp_path: Path) -> Path:
    """Directory with a spec file, a metrics catalog and an integration binary."""
    (tmp_path / "e2e_spec.yml").write_text(SPEC_YAML)
    (tmp_path / "powerdns.yml").write_text(METRICS_YAML)
    (tmp_path / "bin").mkdir()
    binary = tmp_path / "bin" / "nri-powerdns"
    binary.write_text("#!/bin/sh\necho '{}'\n")
    binary.chmod(0o755)
    return tmp_path
