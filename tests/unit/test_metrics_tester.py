"""Unit tests for the metrics tester."""

from pathlib import Path

from nri_e2e.runtime import MetricsTester
from nri_e2e.runtime.metrics_tester import keyset_query, missing_metrics
from nri_e2e.spec import Exceptions, MetricAssertion, MetricCatalog, Tests

TAG_KEY = "testKey"
TAG = "e2e-abcdef0-qwert"

CATALOG_YAML = """
entities:
  - entityType: ENTITY_A
    metrics:
      - name: m1
  - entityType: ENTITY_B
    metrics:
      - name: m2
      - name: m3
"""


def keyset(*names: str) -> list[dict]:
    return [{"key": name, "type": "numeric"} for name in names]


class TestMissingMetrics:
    """Tests for missing_metrics()."""

    catalog = MetricCatalog(entities={"ENTITY_A": ("m1",), "ENTITY_B": ("m2", "m3")})

    def test_reports_each_missing_metric(self):
        assert missing_metrics(self.catalog, Exceptions(), ["m2"]) == ["m1", "m3"]

    def test_excepted_entity_skipped(self):
        exceptions = Exceptions(except_entities=("ENTITY_A",))
        assert missing_metrics(self.catalog, exceptions, ["m2"]) == ["m3"]

    def test_excepted_metric_skipped(self):
        exceptions = Exceptions(except_metrics=("m3",))
        assert missing_metrics(self.catalog, exceptions, ["m2"]) == ["m1"]


class TestMetricsTester:
    """Tests for MetricsTester."""

    def test_keyset_query(self):
        assert keyset_query("Metric", TAG_KEY, TAG) == f"SELECT keyset() FROM Metric WHERE testKey = '{TAG}'"

    def test_missing_metrics_reported(self, tmp_path: Path, fake_client):
        """Catalog {A: [m1], B: [m2, m3]} with keyset [m2] misses m1 and m3."""
        (tmp_path / "metrics.yml").write_text(CATALOG_YAML)
        fake_client.responses["keyset()"] = keyset("m2")
        tests = Tests(metrics=(MetricAssertion(source="metrics.yml"),))

        errors = MetricsTester(fake_client, 1, tmp_path).test(tests, TAG_KEY, TAG)

        assert [str(e) for e in errors] == ["finding Metric: m1", "finding Metric: m3"]

    def test_all_metrics_present(self, tmp_path: Path, fake_client):
        (tmp_path / "metrics.yml").write_text(CATALOG_YAML)
        fake_client.responses["keyset()"] = keyset("m1", "m2", "m3")
        tests = Tests(metrics=(MetricAssertion(source="metrics.yml"),))

        assert MetricsTester(fake_client, 1, tmp_path).test(tests, TAG_KEY, TAG) == []

    def test_inline_and_file_exceptions_are_merged(self, tmp_path: Path, fake_client, monkeypatch):
        """The exceptions file path may use env vars."""
        (tmp_path / "metrics.yml").write_text(CATALOG_YAML)
        (tmp_path / "exceptions").mkdir()
        (tmp_path / "exceptions" / "except.yml").write_text("except_metrics:\n  - m3\n")
        monkeypatch.setenv("EXCEPTIONS_DIR", "exceptions")
        fake_client.responses["keyset()"] = keyset("m2")
        assertion = MetricAssertion(
            source="metrics.yml",
            exceptions_source="${EXCEPTIONS_DIR}/except.yml",
            exceptions=Exceptions(except_entities=("ENTITY_A",)),
        )

        errors = MetricsTester(fake_client, 1, tmp_path).test(Tests(metrics=(assertion,)), TAG_KEY, TAG)

        assert errors == []

    def test_missing_source_file(self, tmp_path: Path, fake_client):
        tests = Tests(metrics=(MetricAssertion(source="missing.yml"),))
        errors = MetricsTester(fake_client, 1, tmp_path).test(tests, TAG_KEY, TAG)

        assert len(errors) == 1
        assert "reading metrics source file" in str(errors[0])
        assert fake_client.queries == []

    def test_empty_keyset(self, tmp_path: Path, fake_client):
        (tmp_path / "metrics.yml").write_text(CATALOG_YAML)
        tests = Tests(metrics=(MetricAssertion(source="metrics.yml"),))

        errors = MetricsTester(fake_client, 1, tmp_path).test(tests, TAG_KEY, TAG)

        assert len(errors) == 1
        assert "finding keyset" in str(errors[0])
        assert errors[0].retryable
