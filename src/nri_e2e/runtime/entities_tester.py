"""Entity presence assertions."""

from __future__ import annotations

from ..errors import E2EError, QueryClientError, TransientAssertionError
from ..newrelic import QueryClient
from ..shared.logging import get_logger
from ..spec import EntityAssertion, Tests
from .nrql_tester import NO_RESULT, RESULT_NUMBER

logger = get_logger(__name__)

GUIDS_FIELD = "uniques.entity.guid"


def entity_guids_query(assertion: EntityAssertion, tag_key: str, tag_value: str) -> str:
    return (
        f"SELECT uniques(entity.guid) FROM {assertion.data_type} "
        f"WHERE metricName = '{assertion.metric_name}' "
        f"AND {tag_key} = '{tag_value}' LIMIT 1"
    )


class EntitiesTester:
    """Checks that the scenario produced entities of the expected type."""

    def __init__(self, client: QueryClient, account_id: int):
        self.client = client
        self.account_id = account_id

    def test(self, tests: Tests, tag_key: str, tag_value: str) -> list[E2EError]:
        errors: list[E2EError] = []
        for assertion in tests.entities:
            try:
                guids = self._find_guids(assertion, tag_key, tag_value)
            except E2EError as e:
                errors.append(TransientAssertionError(f"finding entity guid: {e}"))
                continue

            for guid in guids:
                try:
                    entity = self.client.get_entity(guid)
                except QueryClientError as e:
                    errors.append(TransientAssertionError(f"finding entity guid: get entity: {e}"))
                    continue

                # Some GUIDs (samples shimmed into metrics) never become entities
                if entity is None:
                    logger.debug("guid did not resolve to an entity", guid=guid)
                    continue

                if entity.type != assertion.type:
                    errors.append(
                        TransientAssertionError(
                            f"entity type is not matching: {entity.type}!={assertion.type}",
                            data={"guid": guid},
                        )
                    )
        return errors

    def _find_guids(self, assertion: EntityAssertion, tag_key: str, tag_value: str) -> list[str]:
        expected_number = assertion.expected_number or 1
        query = entity_guids_query(assertion, tag_key, tag_value)
        logger.debug("finding entity guids", query=query, expected_number=expected_number)

        try:
            rows = self.client.query(self.account_id, query)
        except QueryClientError as e:
            raise TransientAssertionError(
                f"executing query to fetch entity GUIDs {query}, {e}"
            ) from e

        if not rows or rows[0].get(GUIDS_FIELD) is None:
            raise TransientAssertionError(f"{NO_RESULT}: {query}")

        guids = [str(guid) for guid in rows[0][GUIDS_FIELD]]
        if len(guids) < expected_number:
            raise TransientAssertionError(
                f"{RESULT_NUMBER}: {query}: got {len(guids)}, expected {expected_number}",
                data={"got": len(guids), "expected": expected_number},
            )
        return guids
