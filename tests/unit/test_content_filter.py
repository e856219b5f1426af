"""Unit tests for the spam/abuse content filter."""

import pytest

from clawquest.errors import ValidationFailedError
from clawquest.services.content_filter import check_text, is_spam


class TestIsSpam:
    def test_plain_question_passes(self):
        assert is_spam("What is the capital of France?") is False

    def test_repeated_character(self):
        assert is_spam("heyyyyy there") is True

    def test_four_repeats_allowed(self):
        assert is_spam("heyyyy there") is False

    def test_consonant_run(self):
        assert is_spam("qwrtzpk") is True

    def test_five_consonants_allowed(self):
        # "rthwr" is five consonants
        assert is_spam("earthwrecked") is False

    def test_punctuation_density(self):
        assert is_spam("why?!?!") is True

    def test_shouting(self):
        assert is_spam("WHAT IS THE CAPITAL") is True

    def test_short_caps_not_shouting(self):
        # ten letters or fewer is never treated as shouting
        assert is_spam("NASA ESA") is False

    def test_mixed_case_long_text(self):
        assert is_spam("Who painted the Mona Lisa") is False


class TestCheckText:
    def test_returns_text(self):
        assert check_text("question", "Capital of France?", 10, 200) == "Capital of France?"

    def test_too_short(self):
        with pytest.raises(ValidationFailedError, match="Question must be at least 10 characters"):
            check_text("question", "Why?", 10, 200)

    def test_too_long(self):
        with pytest.raises(ValidationFailedError, match=r"Answer too long \(max 100 characters\)"):
            check_text("answer", "a b " * 60, 2, 100)

    def test_spam(self):
        with pytest.raises(ValidationFailedError, match="contains spam"):
            check_text("answer", "zzzzzz", 2, 100)

    def test_status_code(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            check_text("answer", "x", 2, 100)
        assert exc_info.value.status_code == 400

    def test_empty(self):
        with pytest.raises(ValidationFailedError, match="Answer cannot be empty"):
            check_text("answer", "", 1, 100)

    def test_single_character_allowed_at_minimum_one(self):
        assert check_text("answer", "x", 1, 100) == "x"
