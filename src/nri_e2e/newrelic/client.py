"""HTTP client for the New Relic NerdGraph API.

Runs NRQL queries and entity lookups through the GraphQL endpoint of the
configured region.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..errors import ConfigurationError, QueryClientError

REGION_ENDPOINTS = {
    "US": "https://api.newrelic.com/graphql",
    "EU": "https://api.eu.newrelic.com/graphql",
}
DEFAULT_REGION = "US"
DEFAULT_TIMEOUT = 30.0

NRQL_QUERY = """
query($accountId: Int!, $nrql: Nrql!) {
  actor {
    account(id: $accountId) {
      nrql(query: $nrql) {
        results
      }
    }
  }
}
"""

ENTITY_QUERY = """
query($guid: EntityGuid!) {
  actor {
    entity(guid: $guid) {
      guid
      name
      type
      entityType
      domain
    }
  }
}
"""


@dataclass(frozen=True)
class Entity:
    """An entity as reported by NerdGraph."""

    guid: str
    name: str = ""
    type: str = ""
    entity_type: str = ""
    domain: str = ""


class QueryClient(Protocol):
    """What the testers need from the query backend."""

    def query(self, account_id: int, nrql: str) -> list[dict[str, Any]]: ...

    def get_entity(self, guid: str) -> Entity | None: ...


class NerdGraphClient:
    """NerdGraph client.

    Usage:
        with NerdGraphClient(api_key, region="EU") as client:
            rows = client.query(account_id, "SELECT count(*) FROM Metric")
    """

    def __init__(
        self,
        api_key: str,
        region: str = DEFAULT_REGION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            api_key: User API key
            region: US or EU
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)

        Raises:
            ConfigurationError: If the region is unknown
        """
        region = (region or DEFAULT_REGION).upper()
        if region not in REGION_ENDPOINTS:
            raise ConfigurationError(f"region {region} is not valid")

        self.region = region
        self.endpoint = REGION_ENDPOINTS[region]
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            headers={"Content-Type": "application/json", "API-Key": api_key},
            transport=transport,
        )

    def __enter__(self) -> NerdGraphClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Post a GraphQL request and return its data.

        Raises:
            QueryClientError: On connection, HTTP or GraphQL errors
        """
        try:
            response = self._client.post(
                self.endpoint, json={"query": query, "variables": variables}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.ConnectError:
            raise QueryClientError(f"Cannot connect to NerdGraph at {self.endpoint}")
        except httpx.TimeoutException:
            raise QueryClientError(f"Request timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            raise QueryClientError(
                f"HTTP error {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise QueryClientError(f"NerdGraph request failed: {e}")

        if not isinstance(payload, dict):
            raise QueryClientError(f"unexpected NerdGraph response: {payload!r}")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise QueryClientError(messages, data={"errors": errors})

        return payload.get("data") or {}

    def query(self, account_id: int, nrql: str) -> list[dict[str, Any]]:
        """Run a NRQL query.

        Returns:
            Result rows

        Raises:
            QueryClientError: If the query could not be executed
        """
        data = self._request(NRQL_QUERY, {"accountId": account_id, "nrql": nrql})
        account = (data.get("actor") or {}).get("account") or {}
        nrql_result = account.get("nrql")
        if nrql_result is None:
            raise QueryClientError(f"no NRQL result for account {account_id}")
        return nrql_result.get("results") or []

    def get_entity(self, guid: str) -> Entity | None:
        """Look up an entity by GUID.

        Returns:
            Entity, or None when NerdGraph knows no entity for the GUID

        Raises:
            QueryClientError: If the lookup failed
        """
        data = self._request(ENTITY_QUERY, {"guid": guid})
        entity = (data.get("actor") or {}).get("entity")
        if entity is None:
            return None
        return Entity(
            guid=entity.get("guid", guid),
            name=entity.get("name") or "",
            type=entity.get("type") or "",
            entity_type=entity.get("entityType") or "",
            domain=entity.get("domain") or "",
        )
