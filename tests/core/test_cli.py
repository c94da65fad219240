"""
Test CLI
========

Click commands with the facade patched out.
"""

import json
import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock, MagicMock, patch

from astkg.cli import cli
from astkg.models import ExtractedEntities


@pytest.fixture
def kg():
    instance = MagicMock()
    instance.connect = AsyncMock()
    instance.close = AsyncMock()
    instance.refresh_registry = AsyncMock(return_value={"classes": 2, "methods": 5})
    instance.health_check = AsyncMock(return_value=True)
    instance.ingestion_status = MagicMock(return_value={"is_running": False, "last_run_time": "Never"})
    instance.analyze = AsyncMock(return_value=ExtractedEntities(
        classes=["OrderService"], methods=["processOrder"]
    ))
    with patch("astkg.cli.commands.CodeKnowledgeGraph", return_value=instance):
        yield instance


class TestAnalyzeCommand:
    """Test `astkg analyze`."""

    def test_text_output(self, kg):
        result = CliRunner().invoke(cli, ["analyze", "how are orders processed?"])

        assert result.exit_code == 0
        assert "Classes:" in result.output
        assert "  - OrderService" in result.output
        assert "  - processOrder" in result.output
        kg.analyze.assert_awaited_once_with("how are orders processed?", use_prefilter=None)
        kg.close.assert_awaited_once()

    def test_json_output_and_no_prefilter(self, kg):
        result = CliRunner().invoke(cli, ["analyze", "orders", "--no-prefilter", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["classes"] == ["OrderService"]
        kg.analyze.assert_awaited_once_with("orders", use_prefilter=False)

    def test_nothing_found(self, kg):
        kg.analyze.return_value = ExtractedEntities.empty()

        result = CliRunner().invoke(cli, ["analyze", "quantum flux"])

        assert result.exit_code == 0
        assert "No relevant entities found" in result.output

    def test_connection_error(self, kg):
        kg.connect.side_effect = ConnectionError("falkordb down")

        result = CliRunner().invoke(cli, ["analyze", "orders"])

        assert result.exit_code == 1


class TestIngestCommand:
    """Test `astkg ingest`."""

    def test_success(self, kg):
        kg.run_ingestion = AsyncMock(return_value={
            "last_error": None, "last_run_time": "2026-01-01T00:00:00+00:00",
        })

        result = CliRunner().invoke(cli, ["ingest"])

        assert result.exit_code == 0
        assert "Ingestion completed" in result.output

    def test_failure(self, kg):
        kg.run_ingestion = AsyncMock(return_value={
            "last_error": "build_graph: falkordb down", "last_run_time": "Never",
        })

        result = CliRunner().invoke(cli, ["ingest"])

        assert result.exit_code == 1

    def test_empty_snapshot(self, kg):
        kg.run_ingestion = AsyncMock(return_value={"last_error": None, "last_run_time": "Never"})

        result = CliRunner().invoke(cli, ["ingest"])

        assert result.exit_code == 0
        assert "Nothing ingested" in result.output


class TestStatusCommand:
    """Test `astkg status`."""

    def test_status(self, kg):
        result = CliRunner().invoke(cli, ["status"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["graph_healthy"] is True
        assert report["entities"] == {"classes": 2, "methods": 5}


class TestLoadConfig:
    """Test --config handling."""

    def test_config_file_is_used(self, kg, tmp_path):
        path = tmp_path / "astkg.yaml"
        path.write_text("ingestion:\n  ast_endpoint: http://ast-service:9000\n")

        with patch("astkg.cli.commands.CodeKnowledgeGraph", return_value=kg) as kg_cls:
            result = CliRunner().invoke(cli, ["analyze", "orders", "--config", str(path)])

        assert result.exit_code == 0
        config = kg_cls.call_args.args[0]
        assert config.ingestion.ast_endpoint == "http://ast-service:9000"
