"""Tests for the ask context compactor."""

from datetime import UTC, datetime, timedelta

from src.orchestrators.ask.compactor import compact_results, parse_message_date, sort_by_date
from src.tools.gmail import to_candidate


def _candidates(make_message, count, **kwargs):
    base = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    return [to_candidate(make_message(f"m{i}", date=base + timedelta(hours=i), **kwargs)) for i in range(count)]


def test_parse_message_date_variants():
    assert parse_message_date("Tue, 17 Mar 2026 10:00:00 +0000") == datetime(2026, 3, 17, 10, tzinfo=UTC)
    assert parse_message_date("Tue, 17 Mar 2026 10:00:00 -0000").tzinfo is not None
    assert parse_message_date("not a date") == datetime.fromtimestamp(0, tz=UTC)
    assert parse_message_date("") == datetime.fromtimestamp(0, tz=UTC)


def test_sort_newest_first_with_undated_last(make_message):
    dated = _candidates(make_message, 3)
    undated = to_candidate(make_message("nodate", date="garbage"))
    ranked = sort_by_date([undated, *dated])
    assert [m.id for m in ranked] == ["m2", "m1", "m0", "nodate"]


def test_compact_takes_twelve_newest(make_message, limits):
    messages = _candidates(make_message, 20, body="short body")
    ranked, compact = compact_results(messages, limits)

    assert len(ranked) == 20
    assert len(compact) == 12
    assert compact[0].id == "m19"


def test_compact_preview_is_bounded_and_uses_html(make_message, limits):
    long_html = "<html><head><style>p{}</style></head><body><p>" + "word " * 400 + "</p></body></html>"
    messages = [to_candidate(make_message("h", html=long_html))]

    _, compact = compact_results(messages, limits)

    assert len(compact[0].preview) == limits.preview_chars
    assert compact[0].preview.startswith("word word")
    assert "p{}" not in compact[0].preview


def test_compact_shrinks_to_eight_then_five(make_message, limits):
    medium = _candidates(make_message, 20, body="x" * 600)
    _, compact = compact_results(medium, limits)
    assert len(compact) == 8

    huge = _candidates(make_message, 20, subject="s" * 2000)
    _, compact = compact_results(huge, limits)
    assert len(compact) == 5


def test_compact_empty(limits):
    assert compact_results([], limits) == ([], [])


def test_compact_cap_bounds_every_size(make_message, limits):
    messages = _candidates(make_message, 20, body="short body")
    ranked, compact = compact_results(messages, limits, cap=3)

    assert len(ranked) == 20
    assert [c.id for c in compact] == ["m19", "m18", "m17"]
