"""Tests for slug generation."""

from __future__ import annotations

import pytest

from community.services.slugify import (
    ensure_unique_slug,
    extract_slug_from_url,
    is_valid_slug,
    slugify,
    unique_slug_for,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hello World", "hello-world"),
        ("FaithTech Adelaide: Web Dev Meetup", "faithtech-adelaide-web-dev-meetup"),
        ("Testing & QA", "testing-qa"),
        ("don't stop", "dont-stop"),
        ("Hello---World", "hello-world"),
        ("  Hello World  ", "hello-world"),
        ("---Hello World---", "hello-world"),
        ("São Paulo", "sao-paulo"),
        ("Zürich", "zurich"),
        ("Web 3.0 Conference", "web-3-0-conference"),
        ("Hello 🎉 World", "hello-world"),
        ("Hello 世界", "hello"),
        ("!!!", ""),
        ("", ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_options():
    assert slugify("Hello World", lowercase=False) == "Hello-World"
    assert slugify("Hello World", separator="_") == "hello_world"


def test_slugify_truncates_at_a_late_separator():
    assert slugify("hello world amazing", max_length=12) == "hello-world"


def test_slugify_truncates_hard_when_no_separator_is_near():
    result = slugify("a" * 200, max_length=100)
    assert result == "a" * 100


def test_ensure_unique_slug_appends_counter():
    taken = {"meetup", "meetup-2"}
    assert ensure_unique_slug("fresh", taken.__contains__) == "fresh"
    assert ensure_unique_slug("meetup", taken.__contains__) == "meetup-3"


def test_ensure_unique_slug_falls_back_to_timestamp():
    result = ensure_unique_slug("busy", lambda candidate: True)
    suffix = result.removeprefix("busy-")
    assert suffix.isdigit()
    assert int(suffix) > 1000


def test_unique_slug_for_symbol_only_title():
    assert unique_slug_for("!!!", lambda candidate: False) == "untitled"


def test_is_valid_slug():
    assert is_valid_slug("web-dev-meetup")
    assert is_valid_slug("event-2026")
    assert not is_valid_slug("Web-Dev")
    assert not is_valid_slug("-leading")
    assert not is_valid_slug("double--dash")
    assert not is_valid_slug("")


def test_extract_slug_from_url():
    assert extract_slug_from_url("/adelaide/events/web-dev-meetup") == "web-dev-meetup"
    assert extract_slug_from_url("https://example.com/blog/hello-world/?ref=x") == "hello-world"
    assert extract_slug_from_url("/") is None
