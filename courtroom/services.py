import json
import logging
import math
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from . import prompts
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

SUMMARY_MAX_LENGTH = 10000
SUMMARY_INPUT_LIMIT = 15000
RAW_VERDICT_LIMIT = 500
DEFAULT_CONFIDENCE = 50

NO_KEY_VERDICT = {
    "verdict": "Mock verdict: favoring Lawyer A (sample).",
    "reasoning": "No Gemini API key - this is a mocked response.",
    "confidence": 62,
}

EMPTY_RESPONSE_VERDICT = {
    "verdict": "No verdict provided",
    "reasoning": "Empty response from Gemini. The AI may have exceeded token limits.",
    "confidence": DEFAULT_CONFIDENCE,
}


class JudgeAPIError(RuntimeError):
    """The LLM endpoint answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Gemini API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


def _field(obj: Any, name: str, default: Any = "") -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


# -------------------------------
# Prompt building
# -------------------------------
def build_judge_prompt(case: Any, arguments: Iterable[Any] = (), settings: Optional[Settings] = None) -> str:
    sections = [prompts.JUDGE_PREAMBLE]

    file_text = _field(case, "file_text")
    if file_text:
        file_text = summarize_if_needed(file_text, settings=settings)
        sections.append(prompts.CASE_TEXT_SECTION.format(text=file_text))
    if _field(case, "lawyerA_text"):
        sections.append(prompts.LAWYER_A_SECTION.format(text=_field(case, "lawyerA_text")))
    if _field(case, "lawyerB_text"):
        sections.append(prompts.LAWYER_B_SECTION.format(text=_field(case, "lawyerB_text")))

    lines = [
        prompts.ARGUMENT_LINE.format(index=i, side=_field(a, "side"), text=_field(a, "text"))
        for i, a in enumerate(arguments, start=1)
    ]
    if lines:
        sections.append(prompts.ARGUMENTS_SECTION.format(arguments="\n".join(lines)))

    sections.append(prompts.JUDGE_FORMAT_INSTRUCTIONS)
    return "\n\n".join(sections)


# -------------------------------
# Response parsing
# -------------------------------
FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
FENCED_RE = re.compile(r"```\s*([\s\S]*?)\s*```")
JSON_TAGS_RE = re.compile(r"<JSON>([\s\S]*?)</JSON>", re.IGNORECASE)
BRACES_RE = re.compile(r"\{[\s\S]*\}")

PARTIAL_VERDICT_RE = re.compile(r'"verdict"\s*:\s*"([^"]+)"', re.IGNORECASE)
PARTIAL_CONFIDENCE_RE = re.compile(r'"confidence"\s*:\s*(\d+)', re.IGNORECASE)


def _loads_object(text: str) -> Optional[Dict]:
    try:
        obj = json.loads(text.strip())
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


def _match_object(pattern: "re.Pattern", content: str, group: int = 1) -> Optional[Dict]:
    m = pattern.search(content)
    if not m:
        return None
    return _loads_object(m.group(group))


def from_json_fence(content: str) -> Optional[Dict]:
    return _match_object(FENCED_JSON_RE, content)


def from_plain_fence(content: str) -> Optional[Dict]:
    return _match_object(FENCED_RE, content)


def from_json_tags(content: str) -> Optional[Dict]:
    return _match_object(JSON_TAGS_RE, content)


def from_braces(content: str) -> Optional[Dict]:
    return _match_object(BRACES_RE, content, group=0)


# Tried in this order; the first one yielding a JSON object wins.
PARSE_STRATEGIES: List[Callable[[str], Optional[Dict]]] = [
    from_json_fence,
    from_plain_fence,
    from_json_tags,
    from_braces,
]


def coerce_confidence(value: Any) -> int:
    """Clamp a confidence value into 0-100; anything non-numeric becomes 50."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    if isinstance(value, str):
        m = re.search(r"-?\d+(?:\.\d+)?", value)
        if not m:
            return DEFAULT_CONFIDENCE
        value = float(m.group(0))
    if not isinstance(value, (int, float)) or value != value:
        return DEFAULT_CONFIDENCE
    if math.isinf(value):
        return 100 if value > 0 else 0
    return int(min(max(round(value), 0), 100))


def normalize_verdict(obj: Dict) -> Dict:
    verdict = obj.get("verdict") or obj.get("text") or "No verdict provided"
    return {
        "verdict": str(verdict),
        "reasoning": str(obj.get("reasoning") or ""),
        "confidence": coerce_confidence(obj.get("confidence")),
    }


def parse_judge_response(content: str, truncated: bool = False) -> Dict:
    """Turn free-text model output into {verdict, reasoning, confidence}.

    The model is asked for bare JSON but often wraps it in markdown fences,
    <JSON> tags or prose, so each extraction strategy is tried in turn. When
    all of them fail the raw text itself becomes the verdict.
    """
    for strategy in PARSE_STRATEGIES:
        obj = strategy(content)
        if obj is not None:
            return normalize_verdict(obj)

    if truncated:
        verdict_match = PARTIAL_VERDICT_RE.search(content)
        if verdict_match:
            conf_match = PARTIAL_CONFIDENCE_RE.search(content)
            return {
                "verdict": verdict_match.group(1),
                "reasoning": "Response was truncated. Analysis incomplete due to length limits.",
                "confidence": coerce_confidence(int(conf_match.group(1)) if conf_match else None),
            }

    logger.warning("judge response not parseable as JSON: %s", content[:200])
    return {
        "verdict": content[:RAW_VERDICT_LIMIT],
        "reasoning": "Unable to parse JSON response from AI. Raw response returned.",
        "confidence": DEFAULT_CONFIDENCE,
    }


# -------------------------------
# Gemini API
# -------------------------------
def _candidate(data: Dict) -> Dict:
    candidates = data.get("candidates") or [{}]
    return candidates[0] or {}


def _candidate_text(candidate: Dict) -> str:
    parts = (candidate.get("content") or {}).get("parts") or [{}]
    return (parts[0] or {}).get("text") or ""


def _post_gemini(settings: Settings, body: Dict, timeout: float) -> requests.Response:
    url = GEMINI_URL.format(model=settings.gemini_model)
    return requests.post(
        url,
        params={"key": settings.gemini_api_key},
        headers={"Content-Type": "application/json"},
        json=body,
        timeout=timeout,
    )


def _network_failure_verdict(exc: Exception) -> Dict:
    return {
        "verdict": (
            "Unable to reach Gemini API. Mock verdict: The case presents valid arguments from both sides. "
            "Based on contract law principles, further evidence is needed."
        ),
        "reasoning": (
            f"Network error ({type(exc).__name__}): {exc}. "
            "Please check your internet connection and API key validity."
        ),
        "confidence": DEFAULT_CONFIDENCE,
    }


def call_judge(case: Any, arguments: Iterable[Any] = (), settings: Optional[Settings] = None) -> Dict:
    """Ask the LLM judge for a verdict on a case and its arguments so far.

    Always returns {verdict, reasoning, confidence}. Missing credentials and
    network failures produce mocked verdicts; a non-success HTTP status
    raises JudgeAPIError so quota and auth problems stay visible.

    Case text longer than SUMMARY_MAX_LENGTH is first condensed by a separate
    summarization request (summary_timeout), so a keyed call on a long case
    makes two POSTs and can block for judge_timeout + summary_timeout.
    """
    settings = settings or get_settings()
    prompt = build_judge_prompt(case, list(arguments), settings=settings)

    if not settings.gemini_api_key:
        return dict(NO_KEY_VERDICT)

    body = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": 0.3,
            "maxOutputTokens": 4096,
            "topP": 0.9,
            "topK": 40,
        },
    }

    started = time.perf_counter()
    try:
        resp = _post_gemini(settings, body, settings.judge_timeout)
    except requests.RequestException as exc:
        logger.error("judge call failed: %s: %s", type(exc).__name__, exc)
        return _network_failure_verdict(exc)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    if not resp.ok:
        logger.error("judge call status=%s latency_ms=%s body=%s", resp.status_code, elapsed_ms, resp.text[:300])
        raise JudgeAPIError(resp.status_code, resp.text)

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    candidate = _candidate(data)
    truncated = candidate.get("finishReason") == "MAX_TOKENS"
    content = _candidate_text(candidate).strip()
    logger.info(
        "judge call model=%s latency_ms=%s finish_reason=%s chars=%s",
        settings.gemini_model,
        elapsed_ms,
        candidate.get("finishReason"),
        len(content),
    )

    if not content:
        if truncated:
            thoughts = (data.get("usageMetadata") or {}).get("thoughtsTokenCount")
            logger.warning("judge response truncated with no content thoughts_tokens=%s", thoughts)
        return dict(EMPTY_RESPONSE_VERDICT)

    if truncated:
        logger.warning("judge response truncated (MAX_TOKENS), parsing partial content")
    return parse_judge_response(content, truncated=truncated)


# -------------------------------
# Summarization
# -------------------------------
def _truncate(text: str, max_length: int) -> str:
    return text[:max_length] + "\n...(truncated)"


def summarize_if_needed(text: str, max_length: int = SUMMARY_MAX_LENGTH, settings: Optional[Settings] = None) -> str:
    """Return text unchanged when short enough, else an LLM summary (or a plain cut)."""
    if not text or len(text) <= max_length:
        return text

    settings = settings or get_settings()
    if not settings.gemini_api_key:
        return _truncate(text, max_length)

    body = {
        "contents": [{"parts": [{"text": prompts.SUMMARIZE_PROMPT.format(text=text[:SUMMARY_INPUT_LIMIT])}]}],
        "generationConfig": {"temperature": 0.2, "maxOutputTokens": 1024},
    }
    try:
        resp = _post_gemini(settings, body, settings.summary_timeout)
        resp.raise_for_status()
        summary = _candidate_text(_candidate(resp.json()))
    except (requests.RequestException, ValueError) as exc:
        logger.warning("summarization failed: %s", exc)
        return _truncate(text, max_length)
    return summary or text[:max_length]


def verdict_text(result: Dict) -> str:
    """Stored form of a verdict: the decision, then its reasoning when there is one."""
    if result.get("reasoning"):
        return f"{result['verdict']}\n\nReasoning: {result['reasoning']}"
    return result["verdict"]
