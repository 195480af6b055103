"""Tests for body text conversion and answer cleanup."""

from src.core.formatting import clean_answer, html_to_text, message_text


def test_html_to_text_drops_scripts_and_styles():
    html = "<html><head><title>x</title><style>p{}</style></head><body><p>Hello</p><script>evil()</script><p>world</p></body></html>"
    assert html_to_text(html) == "Hello world"


def test_html_to_text_empty():
    assert html_to_text("") == ""


def test_message_text_prefers_plain_body():
    assert message_text("plain", "<b>html</b>", "snip") == "plain"
    assert message_text("", "<b>html</b>", "snip") == "html"
    assert message_text("", "", "snip") == "snip"
    assert message_text("", "") == ""


def test_clean_answer_strips_fences():
    assert clean_answer('```json\n{"answer": "x"}\n```') == '{"answer": "x"}'


def test_clean_answer_unescapes_newlines():
    assert clean_answer("line one\\nline two") == "line one\nline two"
