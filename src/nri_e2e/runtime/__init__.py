"""Scenario execution engine.

This package provides:
- value coercion and result comparison
- a fixed-delay retrier
- testers for NRQL, entity and metric assertions
- the scenario runner that ties them to the agent lifecycle
"""

from .coercion import Value, ValueKind, coerce, to_value
from .commands import (
    CommandLogger,
    CommandRunner,
    GHACommandLogger,
    StructlogCommandLogger,
    command_logger,
)
from .comparator import (
    ComparisonResult,
    compare_bounded,
    compare_exact,
    compare_expected,
    format_range,
)
from .entities_tester import EntitiesTester
from .metrics_tester import MetricsTester
from .nrql_tester import NRQLTester
from .retrier import retry
from .runner import Agent, Runner, Tester, generate_scenario_tag

__all__ = [
    # Coercion
    "Value",
    "ValueKind",
    "coerce",
    "to_value",
    # Comparison
    "ComparisonResult",
    "compare_exact",
    "compare_bounded",
    "compare_expected",
    "format_range",
    # Retry
    "retry",
    # Testers
    "Tester",
    "NRQLTester",
    "EntitiesTester",
    "MetricsTester",
    # Commands
    "CommandLogger",
    "CommandRunner",
    "GHACommandLogger",
    "StructlogCommandLogger",
    "command_logger",
    # Runner
    "Agent",
    "Runner",
    "generate_scenario_tag",
]
