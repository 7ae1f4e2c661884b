"""Metric presence assertions."""

from __future__ import annotations

import os
from pathlib import Path

from ..errors import E2EError, QueryClientError, SpecError, TransientAssertionError
from ..newrelic import QueryClient
from ..shared.logging import get_logger
from ..spec import (
    Exceptions,
    MetricAssertion,
    MetricCatalog,
    Tests,
    parse_exceptions_file,
    parse_metrics_file,
)
from .nrql_tester import NO_RESULT

logger = get_logger(__name__)

METRIC_TABLE = "Metric"


def keyset_query(table: str, tag_key: str, tag_value: str) -> str:
    return f"SELECT keyset() FROM {table} WHERE {tag_key} = '{tag_value}'"


def missing_metrics(
    catalog: MetricCatalog, exceptions: Exceptions, queried: list[str]
) -> list[str]:
    """Catalog metrics that are neither excepted nor present in the keyset."""
    present = set(queried)
    except_entities = set(exceptions.except_entities)
    except_metrics = set(exceptions.except_metrics)

    missing = []
    for entity_type, metrics in catalog.entities.items():
        if entity_type in except_entities:
            continue
        for metric in metrics:
            if metric in except_metrics or metric in present:
                continue
            missing.append(metric)
    return missing


class MetricsTester:
    """Checks that every metric declared in the source files was reported."""

    def __init__(self, client: QueryClient, account_id: int, spec_parent_dir: str | Path):
        self.client = client
        self.account_id = account_id
        self.spec_parent_dir = Path(spec_parent_dir)

    def test(self, tests: Tests, tag_key: str, tag_value: str) -> list[E2EError]:
        errors: list[E2EError] = []
        for assertion in tests.metrics:
            source = self.spec_parent_dir / assertion.source
            try:
                content = source.read_bytes()
            except OSError as e:
                errors.append(SpecError(f"reading metrics source file: {e}"))
                continue

            logger.debug("parsing the content of the metrics source file", path=str(source))
            try:
                catalog = parse_metrics_file(content)
            except SpecError as e:
                errors.append(SpecError(f"unmarshaling metrics source file: {e}"))
                continue

            try:
                queried = self._find_metrics(tag_key, tag_value)
            except E2EError as e:
                errors.append(TransientAssertionError(f"finding keyset: {e}"))
                continue

            try:
                exceptions = self._exceptions(assertion)
            except SpecError as e:
                errors.append(e)
                continue

            for metric in missing_metrics(catalog, exceptions, queried):
                errors.append(
                    TransientAssertionError(f"finding Metric: {metric}", data={"metric": metric})
                )
        return errors

    def _find_metrics(self, tag_key: str, tag_value: str) -> list[str]:
        query = keyset_query(METRIC_TABLE, tag_key, tag_value)
        try:
            rows = self.client.query(self.account_id, query)
        except QueryClientError as e:
            raise TransientAssertionError(f"executing query to keyset {query}, {e}") from e
        if not rows:
            raise TransientAssertionError(f"{NO_RESULT}: {query}")
        return [str(row["key"]) for row in rows if row.get("key") is not None]

    def _exceptions(self, assertion: MetricAssertion) -> Exceptions:
        """Inline exceptions, plus those of the exceptions file if one is set."""
        if not assertion.exceptions_source:
            return assertion.exceptions

        path = os.path.expandvars(str(self.spec_parent_dir / assertion.exceptions_source))
        logger.debug("parsing the content of the except metrics source file", path=path)
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise SpecError(f"reading except metrics source file {path}: {e}") from e
        return assertion.exceptions.union(parse_exceptions_file(content))
