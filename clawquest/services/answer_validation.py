"""Answer validation — semantic oracle first, deterministic lexical fallback.

The oracle is an OpenAI-compatible chat-completions endpoint (GLM-4 by
default) asked to return a strict JSON verdict. Anything other than a
well-formed verdict (timeout, non-2xx, missing or malformed JSON) is treated
as the oracle being unavailable and the fallback path decides instead. Oracle
failures never reach the caller.
"""
from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from clawquest.config import Settings
from clawquest.logging_config import get_logger
from clawquest.services.similarity import similarity as lexical_similarity

logger = get_logger(__name__)

ORACLE_ACCEPT_THRESHOLD = 0.7
FALLBACK_ACCEPT_THRESHOLD = 0.6
CONTAINMENT_MIN_RATIO = 0.5
MIN_WORD_LENGTH = 3
PROBE_TIMEOUT_SECONDS = 5.0

SYSTEM_PROMPT = """You are a precise trivia answer validator. Your task is to compare the user's answer with the correct answer.

VALIDATION RULES:
1. Semantic equivalence matters more than exact wording
2. Accept answers with minor spelling errors if meaning is clear
3. Accept partial answers if they contain the KEY information
4. Reject answers that are factually wrong or irrelevant
5. Consider the question context when evaluating

THRESHOLD: isValid = true only if similarity >= 0.7

RESPONSE FORMAT (JSON only):
{
  "isValid": boolean,
  "similarity": number (0.0 to 1.0),
  "explanation": "brief reason",
  "confidence": number (0.0 to 1.0)
}

Examples:
- Q: "Capital of France?" Correct: "Paris" User: "paris" -> {"isValid": true, "similarity": 1.0, "explanation": "Exact match", "confidence": 1.0}
- Q: "2+2?" Correct: "4" User: "four" -> {"isValid": true, "similarity": 1.0, "explanation": "Same meaning", "confidence": 0.95}
- Q: "Largest planet?" Correct: "Jupiter" User: "Saturn" -> {"isValid": false, "similarity": 0.2, "explanation": "Wrong planet", "confidence": 0.9}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*?\}")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class OracleUnavailable(Exception):
    """The oracle could not produce a usable verdict. Never leaves this module."""


@dataclass
class ValidationResult:
    """Verdict on a submitted answer, returned to the challenger even on failure."""
    is_valid: bool
    similarity: float                 # 0.0–1.0
    explanation: str
    confidence: float                 # 0.0–1.0
    method: str = "fallback"          # precheck | oracle | fallback
    lexical_similarity: float = 0.0   # edit-distance score, informational only

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OracleVerdict(BaseModel):
    """The exact shape the oracle must return. Missing or mistyped fields reject the reply."""
    model_config = ConfigDict(strict=True, extra="ignore")

    isValid: bool
    similarity: float = Field(ge=0.0, le=1.0)
    explanation: str
    confidence: float = Field(ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Fallback path
# ---------------------------------------------------------------------------


def normalize_answer(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    text = _NON_WORD.sub(" ", text.lower().strip())
    return _WHITESPACE.sub(" ", text).strip()


def significant_words(normalized: str) -> set[str]:
    return {w for w in normalized.split(" ") if len(w) >= MIN_WORD_LENGTH}


def fallback_validation(correct_answer: str, submitted_answer: str) -> ValidationResult:
    """Deterministic lexical verdict used whenever the oracle is off or fails."""
    norm_correct = normalize_answer(correct_answer)
    norm_user = normalize_answer(submitted_answer)
    lexical = round(lexical_similarity(norm_correct, norm_user), 4)

    if norm_user and norm_correct == norm_user:
        return ValidationResult(
            is_valid=True, similarity=1.0, confidence=1.0,
            explanation="Exact match (fallback)", lexical_similarity=lexical,
        )

    if norm_user and norm_correct and (norm_user in norm_correct or norm_correct in norm_user):
        shorter, longer = sorted((len(norm_user), len(norm_correct)))
        if shorter / longer >= CONTAINMENT_MIN_RATIO:
            return ValidationResult(
                is_valid=True, similarity=0.85, confidence=0.7,
                explanation="Partial match (fallback)", lexical_similarity=lexical,
            )

    correct_words = significant_words(norm_correct)
    user_words = significant_words(norm_user)
    if not correct_words or not user_words:
        return ValidationResult(
            is_valid=False, similarity=0.0, confidence=0.8,
            explanation="No meaningful words found (fallback)", lexical_similarity=lexical,
        )

    overlap = correct_words & user_words
    ratio = len(overlap) / max(len(correct_words), len(user_words))
    is_valid = ratio >= FALLBACK_ACCEPT_THRESHOLD
    return ValidationResult(
        is_valid=is_valid,
        similarity=ratio,
        confidence=0.5,
        explanation=(
            f"Word overlap: {len(overlap)}/{len(correct_words)} (fallback)"
            if is_valid else "Insufficient word match (fallback)"
        ),
        lexical_similarity=lexical,
    )


# ---------------------------------------------------------------------------
# Oracle path
# ---------------------------------------------------------------------------


def parse_oracle_reply(payload: Any) -> OracleVerdict:
    """Pull the JSON verdict out of a chat-completions payload.

    Raises OracleUnavailable for any non-conforming reply.
    """
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise OracleUnavailable(f"Unexpected completion payload: {exc!r}") from exc
    if not isinstance(content, str):
        raise OracleUnavailable("Completion content is not text")

    match = _JSON_OBJECT.search(content)
    if match is None:
        raise OracleUnavailable("No JSON found in oracle response")

    try:
        return OracleVerdict.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise OracleUnavailable(f"Malformed oracle verdict: {exc}") from exc


class SemanticOracle:
    """Client for the external semantic-similarity service."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        model: str,
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> SemanticOracle:
        return cls(
            api_key=settings.oracle_api_key,
            api_url=settings.oracle_api_url,
            model=settings.oracle_model,
            timeout_seconds=settings.oracle_timeout_seconds,
            http_client=http_client,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, body: dict, timeout: float) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(
                self.api_url, json=body, headers=self._headers(), timeout=timeout
            )
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(self.api_url, json=body, headers=self._headers())

    async def judge(self, question: str, correct_answer: str, submitted_answer: str) -> OracleVerdict:
        """Ask the oracle for a verdict. Single attempt, no retries."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f'Question: "{question}"\n'
                        f'Correct Answer: "{correct_answer.strip()}"\n'
                        f'User Answer: "{submitted_answer.strip()}"\n\n'
                        "Evaluate if the user's answer is correct. Return JSON only."
                    ),
                },
            ],
            "temperature": 0.1,
            "max_tokens": 200,
        }
        try:
            response = await self._post(body, self.timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OracleUnavailable(f"Oracle request failed: {exc!r}") from exc
        return parse_oracle_reply(payload)

    async def probe(self) -> tuple[bool, str]:
        """Cheap connectivity check for the health endpoint."""
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": "Test"}],
            "max_tokens": 5,
        }
        try:
            response = await self._post(body, PROBE_TIMEOUT_SECONDS)
        except httpx.HTTPError as exc:
            return False, f"Oracle API error: {exc!r}"
        if response.status_code == 401:
            return False, "Oracle API error: invalid API key"
        if response.status_code != 200:
            return False, f"Oracle API error: HTTP {response.status_code}"
        return True, f"{self.model} API connected and working"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AnswerValidator:
    """Validation engine. One instance per process, built at startup."""

    def __init__(
        self,
        oracle: SemanticOracle | None = None,
        accept_threshold: float = ORACLE_ACCEPT_THRESHOLD,
    ):
        self.oracle = oracle
        self.accept_threshold = accept_threshold
        self._config_logged = False

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> AnswerValidator:
        oracle = SemanticOracle.from_settings(settings, http_client) if settings.oracle_enabled else None
        return cls(oracle=oracle, accept_threshold=settings.oracle_accept_threshold)

    @property
    def oracle_enabled(self) -> bool:
        return self.oracle is not None

    def _log_config_once(self) -> None:
        if self._config_logged:
            return
        logger.info(
            "answer_validator_configured",
            oracle_enabled=self.oracle_enabled,
            model=self.oracle.model if self.oracle else None,
            accept_threshold=self.accept_threshold,
        )
        self._config_logged = True

    async def validate(self, question: str, correct_answer: str, submitted_answer: str) -> ValidationResult:
        self._log_config_once()

        if not submitted_answer or not submitted_answer.strip():
            return ValidationResult(
                is_valid=False, similarity=0.0, confidence=1.0,
                explanation="Empty answer provided", method="precheck",
            )

        if len(submitted_answer.strip()) < 2:
            return ValidationResult(
                is_valid=False, similarity=0.1, confidence=0.9,
                explanation="Answer too short", method="precheck",
            )

        if self.oracle is None:
            return fallback_validation(correct_answer, submitted_answer)

        try:
            verdict = await self.oracle.judge(question, correct_answer, submitted_answer)
        except OracleUnavailable as exc:
            logger.warning("oracle_fallback", reason=str(exc))
            return fallback_validation(correct_answer, submitted_answer)
        except Exception:
            logger.exception("oracle_unexpected_error")
            return fallback_validation(correct_answer, submitted_answer)

        result = ValidationResult(
            is_valid=verdict.isValid and verdict.similarity >= self.accept_threshold,
            similarity=verdict.similarity,
            explanation=verdict.explanation,
            confidence=verdict.confidence,
            method="oracle",
            lexical_similarity=round(
                lexical_similarity(normalize_answer(correct_answer), normalize_answer(submitted_answer)), 4
            ),
        )
        logger.info(
            "oracle_verdict",
            is_valid=result.is_valid,
            similarity=result.similarity,
            confidence=result.confidence,
        )
        return result

    async def check_provider(self) -> dict[str, Any]:
        """Report oracle configuration and reachability. Never raises."""
        self._log_config_once()
        if self.oracle is None:
            return {
                "ok": False,
                "provider": "fallback",
                "has_api_key": False,
                "message": "Oracle API key not configured - using fallback validation",
            }
        ok, message = await self.oracle.probe()
        return {"ok": ok, "provider": self.oracle.model, "has_api_key": True, "message": message}
