"""
Test SemanticEnricher
=====================

Description creation for undescribed methods, with mocked graph and LLM.
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from astkg.pipeline import SemanticEnricher
from astkg.pipeline.enricher import (
    CREATE_DESCRIPTION,
    ENRICHMENT_SYSTEM_PROMPT,
    FIND_UNDESCRIBED_METHODS,
    SOURCE_UNAVAILABLE,
    MethodToEnrich,
    placeholder_description,
    strip_code_fences,
)


def _record(name, file_path="", start_line=0, end_line=0):
    return {
        "id": f"OrderService.{name}()",
        "name": name,
        "signature": f"OrderService.{name}()",
        "class_name": "OrderService",
        "file_path": file_path,
        "return_type": "void",
        "start_line": start_line,
        "end_line": end_line,
    }


def _graph(records, created=1):
    graph = MagicMock()
    writes = []

    async def query(cypher, params=None):
        if cypher == FIND_UNDESCRIBED_METHODS:
            return records
        if cypher == CREATE_DESCRIPTION:
            writes.append(params)
            return [{"created": created}]
        return []

    graph.query = AsyncMock(side_effect=query)
    graph.writes = writes
    return graph


def _llm(response='{"content": "Validates and stores an order."}'):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=response)
    return llm


class TestHelpers:
    """Test module helpers."""

    @pytest.mark.parametrize("text,expected", [
        ('```json\n{"content": "x"}\n```', '{"content": "x"}'),
        ('```\n{"content": "x"}\n```', '{"content": "x"}'),
        ('  {"content": "x"}  ', '{"content": "x"}'),
    ])
    def test_strip_code_fences(self, text, expected):
        assert strip_code_fences(text) == expected

    def test_placeholder_description(self):
        method = MethodToEnrich.from_record(_record("processOrder"))
        assert placeholder_description(method) == (
            "Method processOrder in OrderService - analysis pending due to processing error."
        )

    def test_record_defaults(self):
        method = MethodToEnrich.from_record({"id": "m1"})
        assert method.name == "unknown"
        assert method.class_name == "Unknown"
        assert method.signature == "unknown_m1"
        assert method.return_type == "void"
        assert method.start_line == 0


class TestSemanticEnricher:
    """Test enrich_methods."""

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError, match="max_concurrent"):
            SemanticEnricher(MagicMock(), MagicMock(), max_concurrent=0)

    @pytest.mark.asyncio
    async def test_no_methods(self):
        llm = _llm()
        result = await SemanticEnricher(_graph([]), llm).enrich_methods()

        assert result.found == 0
        assert result.enriched == 0
        llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_describes_each_method(self):
        graph = _graph([_record("processOrder"), _record("cancelOrder")])
        llm = _llm()

        result = await SemanticEnricher(graph, llm).enrich_methods()

        assert result.found == 2
        assert result.enriched == 2
        assert result.placeholders == 0
        assert result.failed == 0
        assert {w["content"] for w in graph.writes} == {"Validates and stores an order."}
        assert all(w["description_id"].startswith(f"desc_{w['method_id']}_") for w in graph.writes)
        assert llm.generate.await_args.kwargs["system_prompt"] == ENRICHMENT_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self):
        graph = _graph([_record("processOrder")])
        fenced = "```json\n" + json.dumps({"content": "Processes an order."}) + "\n```"

        result = await SemanticEnricher(graph, _llm(fenced)).enrich_methods()

        assert result.placeholders == 0
        assert graph.writes[0]["content"] == "Processes an order."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", ["not json", '{"summary": "x"}', '{"content": "  "}', "[1, 2]"])
    async def test_unusable_response_gets_placeholder(self, response):
        graph = _graph([_record("processOrder")])

        result = await SemanticEnricher(graph, _llm(response)).enrich_methods()

        assert result.enriched == 1
        assert result.placeholders == 1
        assert graph.writes[0]["content"].startswith("Method processOrder in OrderService")

    @pytest.mark.asyncio
    async def test_llm_error_gets_placeholder(self):
        graph = _graph([_record("processOrder")])
        llm = MagicMock()
        llm.generate = AsyncMock(side_effect=RuntimeError("rate limited"))

        result = await SemanticEnricher(graph, llm).enrich_methods()

        assert result.placeholders == 1
        assert len(graph.writes) == 1

    @pytest.mark.asyncio
    async def test_missing_method_node_counts_as_failed(self):
        graph = _graph([_record("processOrder")], created=0)

        result = await SemanticEnricher(graph, _llm()).enrich_methods()

        assert result.failed == 1
        assert result.enriched == 0

    @pytest.mark.asyncio
    async def test_listing_errors_propagate(self):
        graph = MagicMock()
        graph.query = AsyncMock(side_effect=ConnectionError("falkordb down"))

        with pytest.raises(ConnectionError):
            await SemanticEnricher(graph, _llm()).enrich_methods()


class TestSourceReading:
    """Test how method source is put into the prompt."""

    @pytest.mark.asyncio
    async def test_reads_line_range_relative_to_source_root(self, tmp_path):
        source = tmp_path / "src" / "OrderService.java"
        source.parent.mkdir()
        source.write_text("line1\nline2\nline3\nline4\n", encoding="utf-8")
        graph = _graph([_record("processOrder", "src/OrderService.java", start_line=2, end_line=3)])
        llm = _llm()

        await SemanticEnricher(graph, llm, source_root=str(tmp_path)).enrich_methods()

        prompt = llm.generate.await_args.args[0]
        assert "line2\nline3" in prompt
        assert "line1" not in prompt
        assert "line4" not in prompt

    @pytest.mark.asyncio
    async def test_zero_end_line_reads_whole_file(self, tmp_path):
        source = tmp_path / "Job.java"
        source.write_text("a\nb\n", encoding="utf-8")
        graph = _graph([_record("run", str(source))])
        llm = _llm()

        await SemanticEnricher(graph, llm).enrich_methods()

        assert "a\nb" in llm.generate.await_args.args[0]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        graph = _graph([_record("processOrder", "does/not/exist.java", 1, 5)])
        llm = _llm()

        await SemanticEnricher(graph, llm, source_root=str(tmp_path)).enrich_methods()

        assert SOURCE_UNAVAILABLE in llm.generate.await_args.args[0]

    @pytest.mark.asyncio
    async def test_no_file_path(self):
        graph = _graph([_record("processOrder")])
        llm = _llm()

        await SemanticEnricher(graph, llm).enrich_methods()

        assert SOURCE_UNAVAILABLE in llm.generate.await_args.args[0]
