"""Tests for delivery confirmation codes."""

import pytest
from protean.exceptions import ValidationError

from marketplace.shared.confirmation_code import (
    codes_match,
    generate_confirmation_code,
    normalize_confirmation_code,
)


class TestGeneration:
    def test_code_is_eight_uppercase_alphanumerics(self):
        code = generate_confirmation_code()
        assert len(code) == 8
        assert code.isalnum()
        assert code == code.upper()

    def test_ambiguous_characters_are_never_used(self):
        codes = "".join(generate_confirmation_code() for _ in range(200))
        assert not set(codes) & set("0O1I")

    def test_codes_differ(self):
        assert len({generate_confirmation_code() for _ in range(50)}) > 1


class TestNormalization:
    def test_trims_and_uppercases(self):
        assert normalize_confirmation_code("  ab7kq2zx ") == "AB7KQ2ZX"

    @pytest.mark.parametrize("candidate", ["", "   ", "ABC", "ABCDEFGHJ", None])
    def test_wrong_length_rejected(self, candidate):
        with pytest.raises(ValidationError) as exc:
            normalize_confirmation_code(candidate)
        assert exc.value.messages["confirmation_code"] == ["Code must be 8 characters"]


class TestMatching:
    def test_case_insensitive(self):
        assert codes_match("ab7kq2zx", "AB7KQ2ZX")

    def test_mismatch(self):
        assert not codes_match("AB7KQ2ZY", "AB7KQ2ZX")

    def test_missing_stored_code_never_matches(self):
        assert not codes_match("AB7KQ2ZX", None)

    def test_non_ascii_candidate_is_a_mismatch(self):
        assert not codes_match("ÀB7KQ2ZX", "AB7KQ2ZX")
