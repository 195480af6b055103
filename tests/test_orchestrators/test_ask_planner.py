"""Tests for the ask query planner."""

from src.core.exceptions import LLMUnavailableError
from src.orchestrators.ask.dates import parse_date_range
from src.orchestrators.ask.planner import merge_queries, normalize_query, suggest_queries


def test_no_sources_falls_back_to_catch_all(limits):
    assert merge_queries([], None, [], limits) == ["in:inbox"]


def test_model_queries_are_capped_at_three(limits):
    queries = merge_queries(["from:a", "from:b", "from:c", "from:d"], None, [], limits)
    assert queries == ["from:a", "from:b", "from:c"]


def test_date_and_keywords_expand_to_at_most_six(limits, now):
    rng = parse_date_range("yesterday", now=now)
    queries = merge_queries(["from:a", "from:b", "from:c"], rng, ["invoice"], limits)

    assert len(queries) == 6
    assert queries[0].startswith("in:inbox (from:invoice OR to:invoice OR subject:invoice OR invoice)")
    assert "in:inbox after:2026/03/17 before:2026/03/18" in queries
    assert all("after:2026/03/17" in q for q in queries)
    assert queries[-1] == "in:inbox subject:invoice after:2026/03/17 before:2026/03/18"


def test_queries_are_distinct_and_normalized(limits):
    queries = merge_queries(["from:a   has:attachment", "from:a has:attachment", "  "], None, [], limits)
    assert queries == ["from:a has:attachment"]


def test_query_length_cap():
    assert len(normalize_query("x" * 900, 500)) == 500


async def test_suggest_queries_parses_model_output(llm_factory, limits):
    llm = llm_factory({"query_planning": '```json\n{"queries": ["from:hdfc", "", 7]}\n```'})
    queries, errors = await suggest_queries("statement from hdfc", llm, limits)
    assert queries == ["from:hdfc"]
    assert errors == []
    assert llm.tasks() == ["query_planning"]


async def test_suggest_queries_unavailable_model(llm_factory, limits):
    llm = llm_factory({"query_planning": LLMUnavailableError("down")})
    queries, errors = await suggest_queries("statement from hdfc", llm, limits)
    assert queries == []
    assert errors[0].stage == "plan"
    assert errors[0].kind == "generation"


async def test_suggest_queries_unparseable_output(llm_factory, limits):
    llm = llm_factory({"query_planning": "Sure! Try searching for hdfc."})
    queries, errors = await suggest_queries("statement from hdfc", llm, limits)
    assert queries == []
    assert errors[0].kind == "parse"
