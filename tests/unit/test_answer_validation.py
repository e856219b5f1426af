"""Unit tests for the answer validation engine (oracle + lexical fallback)."""

import json

import httpx
import pytest

from clawquest.config import Settings
from clawquest.services.answer_validation import (
    AnswerValidator,
    OracleUnavailable,
    SemanticOracle,
    fallback_validation,
    normalize_answer,
    parse_oracle_reply,
    significant_words,
)
from tests.factories import oracle_client, verdict

API_KEY = "k" * 32


def make_validator(client: httpx.AsyncClient) -> AnswerValidator:
    oracle = SemanticOracle(
        api_key=API_KEY,
        api_url="https://oracle.test/v1/chat/completions",
        model="glm-4",
        timeout_seconds=2.0,
        http_client=client,
    )
    return AnswerValidator(oracle=oracle)


# ===========================================
# NORMALIZATION
# ===========================================


class TestNormalization:
    def test_strips_punctuation_and_case(self):
        assert normalize_answer("  The Eiffel-Tower!  ") == "the eiffel tower"

    def test_collapses_whitespace(self):
        assert normalize_answer("New\t  York \n City") == "new york city"

    def test_significant_words_drop_short_tokens(self):
        assert significant_words("the eiffel tower of an art") == {"the", "eiffel", "tower", "art"}


# ===========================================
# FALLBACK PATH
# ===========================================


class TestFallbackValidation:
    def test_exact_match_after_normalization(self):
        result = fallback_validation("Paris", "paris")
        assert result.is_valid is True
        assert result.similarity == 1.0
        assert result.confidence == 1.0
        assert result.method == "fallback"

    def test_punctuation_insensitive_exact(self):
        result = fallback_validation("Rock-and-roll", "rock and roll")
        assert result.similarity == 1.0
        assert result.explanation == "Exact match (fallback)"

    def test_short_tokens_ignored_in_overlap(self):
        # "d" and "c" / "dc" are below the word length floor
        result = fallback_validation("Washington, D.C.", "washington dc")
        assert result.is_valid is True
        assert result.similarity == 1.0
        assert result.confidence == 0.5

    def test_containment_with_enough_length(self):
        result = fallback_validation("New York City", "New York")
        assert result.is_valid is True
        assert result.similarity == 0.85
        assert result.confidence == 0.7

    def test_containment_too_short_falls_through(self):
        # "paris" is under half the length of "paris france"
        result = fallback_validation("Paris", "Paris, France")
        assert result.is_valid is False
        assert result.similarity == pytest.approx(0.5)

    def test_word_overlap_exactly_at_threshold_is_valid(self):
        result = fallback_validation(
            "alpha bravo charlie delta echo",
            "alpha bravo charlie xray yankee",
        )
        assert result.similarity == pytest.approx(0.6)
        assert result.is_valid is True
        assert result.confidence == 0.5

    def test_word_overlap_below_threshold_is_invalid(self):
        # 4 of 7 words, about 0.571
        result = fallback_validation(
            "alpha bravo charlie delta echo foxtrot golf",
            "alpha bravo charlie delta xray yankee zulu",
        )
        assert result.similarity < 0.6
        assert result.is_valid is False

    def test_no_overlap(self):
        result = fallback_validation("Paris", "London")
        assert result.is_valid is False
        assert result.similarity == 0.0

    def test_no_significant_words(self):
        result = fallback_validation("42", "41")
        assert result.is_valid is False
        assert result.similarity == 0.0
        assert result.confidence == 0.8

    def test_lexical_similarity_is_informational(self):
        result = fallback_validation("Jupiter", "Jupiterr")
        assert result.lexical_similarity == pytest.approx(7 / 8, abs=1e-4)
        assert result.is_valid is True  # containment, 7/8 length ratio


# ===========================================
# PRECHECKS
# ===========================================


class TestPrechecks:
    @pytest.mark.asyncio
    async def test_empty_answer(self):
        result = await AnswerValidator().validate("Capital of France?", "Paris", "   ")
        assert result.is_valid is False
        assert result.similarity == 0.0
        assert result.confidence == 1.0
        assert result.method == "precheck"

    @pytest.mark.asyncio
    async def test_single_character_answer(self):
        result = await AnswerValidator().validate("What is 2+2?", "4", " 4 ")
        assert result.is_valid is False
        assert result.similarity == 0.1
        assert result.confidence == 0.9
        assert result.explanation == "Answer too short"

    @pytest.mark.asyncio
    async def test_precheck_skips_oracle(self):
        calls = []
        validator = make_validator(oracle_client(verdict(True, 1.0), on_request=calls.append))
        await validator.validate("What is 2+2?", "4", "4")
        assert calls == []


# ===========================================
# ORACLE PATH
# ===========================================


class TestOraclePath:
    @pytest.mark.asyncio
    async def test_similarity_exactly_at_threshold_is_valid(self):
        validator = make_validator(oracle_client(verdict(True, 0.7)))
        result = await validator.validate("Largest planet?", "Jupiter", "Jove")
        assert result.method == "oracle"
        assert result.is_valid is True
        assert result.similarity == 0.7

    @pytest.mark.asyncio
    async def test_similarity_just_below_threshold_is_invalid(self):
        validator = make_validator(oracle_client(verdict(True, 0.699)))
        result = await validator.validate("Largest planet?", "Jupiter", "Jove")
        assert result.method == "oracle"
        assert result.is_valid is False

    @pytest.mark.asyncio
    async def test_oracle_rejection_wins_over_high_similarity(self):
        validator = make_validator(oracle_client(verdict(False, 0.95)))
        result = await validator.validate("Largest planet?", "Jupiter", "Saturn")
        assert result.is_valid is False

    @pytest.mark.asyncio
    async def test_semantic_match_the_fallback_would_miss(self):
        validator = make_validator(oracle_client(verdict(True, 1.0, "Same meaning")))
        result = await validator.validate("What is 2+2?", "4", "four")
        assert result.is_valid is True
        assert result.explanation == "Same meaning"

    @pytest.mark.asyncio
    async def test_request_carries_credentials_and_context(self):
        seen: list[httpx.Request] = []
        validator = make_validator(oracle_client(verdict(True, 1.0), on_request=seen.append))
        await validator.validate("Capital of France?", "Paris", "paris")

        assert seen[0].headers["Authorization"] == f"Bearer {API_KEY}"
        body = json.loads(seen[0].content)
        assert body["model"] == "glm-4"
        assert "Capital of France?" in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_verdict_wrapped_in_prose(self):
        content = "Sure! Here is my evaluation:\n" + verdict(True, 0.9) + "\nHope that helps."
        validator = make_validator(oracle_client(content))
        result = await validator.validate("Capital of France?", "Paris", "paris")
        assert result.method == "oracle"


class TestOracleFailureFallsBack:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client_kwargs",
        [
            {"content": "I think the answer is right."},  # no JSON
            {"content": '{"isValid": true, "similarity": 0.9}'},  # missing fields
            {"content": '{"isValid": "yes", "similarity": 0.9, "explanation": "x", "confidence": 1.0}'},
            {"content": '{"isValid": true, "similarity": 1.5, "explanation": "x", "confidence": 1.0}'},
            {"content": '{"isValid": true, "similarity": 0.9, "explanation": "x", "confidence": 1.0'},
            {"status_code": 500},
            {"status_code": 401},
            {"raise_exc": httpx.ReadTimeout("timed out")},
            {"raise_exc": httpx.ConnectError("refused")},
        ],
    )
    async def test_non_conforming_reply_uses_fallback(self, client_kwargs):
        validator = make_validator(oracle_client(**client_kwargs))
        result = await validator.validate("Capital of France?", "Paris", "paris")
        assert result.method == "fallback"
        assert result.is_valid is True
        assert result.similarity == 1.0

    @pytest.mark.asyncio
    async def test_fallback_failure_verdict_still_returned(self):
        validator = make_validator(oracle_client(status_code=503))
        result = await validator.validate("Capital of France?", "Paris", "London")
        assert result.method == "fallback"
        assert result.is_valid is False
        assert result.similarity == 0.0


class TestParseOracleReply:
    def test_missing_choices(self):
        with pytest.raises(OracleUnavailable):
            parse_oracle_reply({"data": []})

    def test_non_text_content(self):
        with pytest.raises(OracleUnavailable):
            parse_oracle_reply({"choices": [{"message": {"content": None}}]})

    def test_well_formed(self):
        reply = parse_oracle_reply({"choices": [{"message": {"content": verdict(True, 0.8)}}]})
        assert reply.isValid is True
        assert reply.similarity == 0.8


# ===========================================
# CONFIGURATION
# ===========================================


class TestConfiguration:
    def test_missing_key_means_permanent_fallback(self):
        validator = AnswerValidator.from_settings(Settings(_env_file=None, oracle_api_key=""))
        assert validator.oracle_enabled is False

    def test_placeholder_key_is_ignored(self):
        validator = AnswerValidator.from_settings(Settings(_env_file=None, oracle_api_key="changeme"))
        assert validator.oracle_enabled is False

    def test_real_key_enables_oracle(self):
        validator = AnswerValidator.from_settings(Settings(_env_file=None, oracle_api_key=API_KEY))
        assert validator.oracle_enabled is True
        assert validator.accept_threshold == 0.7

    @pytest.mark.asyncio
    async def test_config_logged_once_per_instance(self):
        validator = AnswerValidator()
        await validator.validate("Capital of France?", "Paris", "paris")
        assert validator._config_logged is True
        await validator.validate("Capital of France?", "Paris", "paris")
        assert AnswerValidator()._config_logged is False


class TestCheckProvider:
    @pytest.mark.asyncio
    async def test_without_oracle(self):
        status = await AnswerValidator().check_provider()
        assert status["ok"] is False
        assert status["provider"] == "fallback"
        assert status["has_api_key"] is False

    @pytest.mark.asyncio
    async def test_reachable(self):
        status = await make_validator(oracle_client(verdict(True, 1.0))).check_provider()
        assert status == {
            "ok": True,
            "provider": "glm-4",
            "has_api_key": True,
            "message": "glm-4 API connected and working",
        }

    @pytest.mark.asyncio
    async def test_bad_key(self):
        status = await make_validator(oracle_client(status_code=401)).check_provider()
        assert status["ok"] is False
        assert "invalid API key" in status["message"]

    @pytest.mark.asyncio
    async def test_unreachable_never_raises(self):
        status = await make_validator(oracle_client(raise_exc=httpx.ConnectError("refused"))).check_provider()
        assert status["ok"] is False
