"""Tests for mdiary.core.field_ops -- shared field operations infrastructure."""

from datetime import date
from io import StringIO

import pytest
from rich.console import Console

from mdiary.core.field_ops import (
    ChangeResult,
    FieldDef,
    FieldType,
    coerce_value,
    merge_list,
    parse_field_path,
    print_change,
    validate_field,
)


# ---------------------------------------------------------------------------
# Mock schema for testing (independent of any domain)
# ---------------------------------------------------------------------------

MOCK_SCHEMA: dict[str, FieldDef] = {
    "title": FieldDef(FieldType.STRING, "Title"),
    "count": FieldDef(FieldType.INT, "A count", min_val=0, max_val=100),
    "when": FieldDef(FieldType.DATE, "A day"),
    "tags": FieldDef(FieldType.STRING_LIST, "Tags"),
    "meta": FieldDef(FieldType.DICT, "Metadata dict"),
    "kind": FieldDef(FieldType.STRING, "Kind", choices=["alpha", "beta", "gamma"]),
}


# ---------------------------------------------------------------------------
# parse_field_path
# ---------------------------------------------------------------------------


class TestParseFieldPath:
    def test_simple(self):
        assert parse_field_path("title") == ("title", None)

    def test_dot_notation(self):
        assert parse_field_path("meta.key") == ("meta", "key")

    def test_only_first_dot(self):
        assert parse_field_path("a.b.c") == ("a", "b.c")


# ---------------------------------------------------------------------------
# coerce_value
# ---------------------------------------------------------------------------


class TestCoerceValue:
    def test_string(self):
        assert coerce_value("hello", FieldDef(FieldType.STRING, "")) == "hello"

    def test_int_valid(self):
        assert coerce_value("42", FieldDef(FieldType.INT, "")) == 42

    def test_int_invalid(self):
        with pytest.raises(ValueError, match="Expected integer"):
            coerce_value("nope", FieldDef(FieldType.INT, ""))

    def test_date_valid(self):
        assert coerce_value(" 2024-03-01 ", FieldDef(FieldType.DATE, "")) == date(2024, 3, 1)

    def test_date_invalid(self):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            coerce_value("March 1st", FieldDef(FieldType.DATE, ""))

    def test_list_comma_separated(self):
        assert coerce_value("a, b ,c,", FieldDef(FieldType.STRING_LIST, "")) == ["a", "b", "c"]

    def test_list_json_array(self):
        assert coerce_value('["x", 2]', FieldDef(FieldType.STRING_LIST, "")) == ["x", "2"]

    def test_list_broken_json_falls_back_to_commas(self):
        assert coerce_value("[a, b", FieldDef(FieldType.STRING_LIST, "")) == ["[a", "b"]

    def test_dict_json(self):
        assert coerce_value('{"isbn": "123"}', FieldDef(FieldType.DICT, "")) == {"isbn": "123"}

    def test_dict_rejects_non_object(self):
        with pytest.raises(ValueError, match="Expected JSON object"):
            coerce_value("[1, 2]", FieldDef(FieldType.DICT, ""))

    def test_parser_override(self):
        fdef = FieldDef(FieldType.STRING, "", parser=str.upper)
        assert coerce_value("shout", fdef) == "SHOUT"


# ---------------------------------------------------------------------------
# validate_field
# ---------------------------------------------------------------------------


class TestValidateField:
    def test_valid_string(self):
        assert validate_field("title", "Dune", MOCK_SCHEMA) == []

    def test_unknown_field(self):
        errors = validate_field("nope", "x", MOCK_SCHEMA)
        assert errors == ["Unknown field: 'nope'"]

    def test_int_below_min(self):
        errors = validate_field("count", -1, MOCK_SCHEMA)
        assert len(errors) == 1
        assert "below minimum" in errors[0]

    def test_int_above_max(self):
        errors = validate_field("count", 101, MOCK_SCHEMA)
        assert "above maximum" in errors[0]

    def test_int_in_range(self):
        assert validate_field("count", 100, MOCK_SCHEMA) == []

    def test_invalid_choice(self):
        errors = validate_field("kind", "delta", MOCK_SCHEMA)
        assert "not a valid choice" in errors[0]
        assert "alpha, beta, gamma" in errors[0]

    def test_valid_choice(self):
        assert validate_field("kind", "beta", MOCK_SCHEMA) == []

    def test_dot_notation_on_dict(self):
        assert validate_field("meta.isbn", "123", MOCK_SCHEMA) == []

    def test_dot_notation_on_non_dict(self):
        errors = validate_field("title.sub", "x", MOCK_SCHEMA)
        assert "Dot notation only works on dict fields" in errors[0]


# ---------------------------------------------------------------------------
# merge_list
# ---------------------------------------------------------------------------


class TestMergeList:
    def test_add(self):
        assert merge_list(["a"], add=["b", "a", "b"]) == (["a", "b"], "add")

    def test_remove(self):
        assert merge_list(["a", "b"], remove=["a", "missing"]) == (["b"], "remove")

    def test_add_and_remove(self):
        assert merge_list(["a", "b"], add=["c"], remove=["a"]) == (["b", "c"], "modify")

    def test_replace_wins(self):
        assert merge_list(["a"], add=["b"], replace=["z"]) == (["z"], "replace")

    def test_does_not_mutate_input(self):
        old = ["a"]
        merge_list(old, add=["b"])
        assert old == ["a"]


# ---------------------------------------------------------------------------
# print_change
# ---------------------------------------------------------------------------


class TestPrintChange:
    def _render(self, result: ChangeResult) -> str:
        buf = StringIO()
        print_change(result, Console(file=buf, no_color=True, width=120))
        return buf.getvalue()

    def test_set_shows_old_and_new(self):
        out = self._render(ChangeResult("abc", "rating", "7/10", "9/10", "set"))
        assert "abc: rating" in out
        assert "old: 7/10" in out
        assert "new: 9/10" in out

    def test_unset_shows_removed(self):
        out = self._render(ChangeResult("abc", "notes", "meh", None, "unset"))
        assert "old: meh" in out
        assert "(removed)" in out
