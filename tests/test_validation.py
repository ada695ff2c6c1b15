from datetime import date

import pytest

from validation import BOOKINSTANCE_RULES, FieldRule, escape, form_model, parse_iso8601, validate


def test_escape_matches_html_entities():
    assert escape("<b>O'Neil & \"co\"</b>") == "&lt;b&gt;O&#x27;Neil &amp; &quot;co&quot;&lt;&#x2F;b&gt;"
    assert escape("plain text") == "plain text"


@pytest.mark.parametrize("raw, expected", [
    ("2026-10-19", date(2026, 10, 19)),
    ("2026-10-19T08:30:00", date(2026, 10, 19)),
    ("2026-10-19T08:30:00Z", date(2026, 10, 19)),
    ("2026-10-19T08:30:00+02:00", date(2026, 10, 19)),
    ("19/10/2026", None),
    ("2026-13-01", None),
    ("20261019", None),
    ("1700000000", None),
    ("", None),
])
def test_parse_iso8601(raw, expected):
    assert parse_iso8601(raw) == expected


def test_valid_bookinstance_form():
    result = validate(
        {"book": " abc ", "imprint": "Penguin", "status": "Available", "due_back": "2026-01-05"},
        BOOKINSTANCE_RULES,
    )
    assert result.is_empty()
    assert result.values == {
        "book": "abc",
        "imprint": "Penguin",
        "status": "Available",
        "due_back": date(2026, 1, 5),
    }


def test_missing_fields_are_reported_in_rule_order():
    result = validate({}, BOOKINSTANCE_RULES)
    assert not result.is_empty()
    assert result.messages() == ["Book must be specified", "Imprint must be specified"]
    assert [e.field for e in result.array()] == ["book", "imprint"]
    assert result.values["status"] == ""
    assert result.values["due_back"] is None


def test_empty_due_back_is_skipped():
    result = validate({"book": "a", "imprint": "b", "due_back": ""}, BOOKINSTANCE_RULES)
    assert result.is_empty()
    assert result.values["due_back"] is None


def test_invalid_due_back():
    result = validate({"book": "a", "imprint": "b", "due_back": "soon"}, BOOKINSTANCE_RULES)
    assert result.messages() == ["Invalid date"]
    assert result.values["due_back"] is None


def test_rule_without_trim_counts_whitespace():
    rules = (FieldRule("name", "Name required", min_length=1),)
    assert validate({"name": " "}, rules).is_empty()
    assert not validate({"name": ""}, rules).is_empty()


def test_form_model_follows_rule_order():
    model = form_model(BOOKINSTANCE_RULES)
    assert list(model.model_fields) == ["book", "imprint", "status", "due_back"]
    assert form_model(BOOKINSTANCE_RULES) is model


def test_date_kept_when_other_fields_fail():
    result = validate({"book": "", "imprint": "b", "due_back": "2026-02-03T10:00:00Z"}, BOOKINSTANCE_RULES)
    assert result.messages() == ["Book must be specified"]
    assert result.values["due_back"] == date(2026, 2, 3)


def test_length_checked_before_escaping():
    result = validate({"book": " & ", "imprint": "<i>", "status": "x"}, BOOKINSTANCE_RULES)
    assert result.is_empty()
    assert result.values["book"] == "&amp;"
    assert result.values["imprint"] == "&lt;i&gt;"
