"""Scenario definition loading.

This package parses the YAML spec file that declares the scenarios, their
integrations, shell commands and telemetry assertions.
"""

from .definition import (
    DEFAULT_CUSTOM_TEST_KEY,
    AgentExtensions,
    Definition,
    EntityAssertion,
    Exceptions,
    ExpectedResult,
    Integration,
    MetricAssertion,
    MetricCatalog,
    NRQLAssertion,
    Scenario,
    Tests,
    load_definition,
    parse_definition,
    parse_exceptions_file,
    parse_metrics_file,
    validate_expected_result,
    validate_nrql_assertion,
)

__all__ = [
    # Model
    "Definition",
    "AgentExtensions",
    "Scenario",
    "Integration",
    "Tests",
    "NRQLAssertion",
    "ExpectedResult",
    "EntityAssertion",
    "MetricAssertion",
    "Exceptions",
    "MetricCatalog",
    "DEFAULT_CUSTOM_TEST_KEY",
    # Loading
    "load_definition",
    "parse_definition",
    "parse_exceptions_file",
    "parse_metrics_file",
    # Validation
    "validate_expected_result",
    "validate_nrql_assertion",
]
