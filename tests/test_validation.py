"""Tests for name part normalization and the allowed-character policy."""

import pytest

from namesake.core.validation import (
    MAX_PART_LENGTH,
    REASON_CHARS,
    REASON_EMPTY,
    REASON_START,
    REASON_TOO_LONG,
    check_part,
    fold_part,
    normalize_part,
    validate_parts,
)


class TestNormalizePart:
    def test_trims_and_collapses_whitespace(self):
        assert normalize_part("  Mary   Ann \t") == "Mary Ann"

    def test_none_is_empty(self):
        assert normalize_part(None) == ""

    def test_preserves_case(self):
        assert normalize_part("McKenzie") == "McKenzie"

    def test_nfc_composes_diacritics(self):
        decomposed = "Jose\u0301"
        assert normalize_part(decomposed) == "Jos\u00e9"


class TestFoldPart:
    def test_case_insensitive(self):
        assert fold_part("ANA") == fold_part("ana") == fold_part(" Ana ")

    def test_composed_and_decomposed_fold_equal(self):
        assert fold_part("Jos\u00e9") == fold_part("Jose\u0301")

    def test_casefold_handles_sharp_s(self):
        assert fold_part("STRASSE") == fold_part("stra\u00dfe")


class TestCheckPart:
    @pytest.mark.parametrize(
        "name",
        ["Ana", "Mary-Jane", "O'Brien", "D’Angelo", "Mary Ann", "Zoë", "Łukasz", "Юлия", "さくら"],
    )
    def test_valid(self, name):
        assert check_part(name) is None

    def test_combining_mark_after_letter(self):
        assert check_part("Jose\u0301") is None

    def test_empty(self):
        assert check_part("") == REASON_EMPTY

    def test_too_long(self):
        assert check_part("A" * (MAX_PART_LENGTH + 1)) == REASON_TOO_LONG
        assert check_part("A" * MAX_PART_LENGTH) is None

    @pytest.mark.parametrize("name", ["-Ann", "'Bo", "1Ana", "\u0301Ana"])
    def test_must_start_with_letter(self, name):
        assert check_part(name) == REASON_START

    @pytest.mark.parametrize("name", ["Ana2", "Bob!", "X Æ A-12", "Ana_Lee", "Zoe😀"])
    def test_invalid_characters(self, name):
        assert check_part(name) == REASON_CHARS


class TestValidateParts:
    def test_splits_valid_and_rejected_in_order(self):
        valid, rejected = validate_parts(["Ana", "", "  bob ", "R2D2"], "first")
        assert valid == ["Ana", "bob"]
        assert [(r.part, r.role, r.reason) for r in rejected] == [
            ("", "first", REASON_EMPTY),
            ("R2D2", "first", REASON_CHARS),
        ]

    def test_whitespace_only_is_empty(self):
        valid, rejected = validate_parts(["   "], "middle")
        assert valid == []
        assert rejected[0].reason == REASON_EMPTY
        assert rejected[0].role == "middle"

    def test_duplicates_are_kept(self):
        valid, _ = validate_parts(["Ana", "ana"], "first")
        assert valid == ["Ana", "ana"]
