"""Extract and normalise JSON returned by an LLM."""

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

LIST_FIELDS = ("components", "connections", "risks", "complianceGaps", "costIssues", "recommendations")
SCORE_FIELDS = ("resiliencyScore", "securityScore", "costEfficiencyScore", "complianceScore")


class AnalysisParseError(ValueError):
    """The LLM response did not contain usable JSON."""

    def __init__(self, message: str, response_text: str = ""):
        super().__init__(message)
        self.response_text = response_text


def extract_json(response_text: str) -> dict:
    """Pull the JSON object out of an LLM response.

    Looks for a fenced ```json block first, then the outermost ``{...}``.

    Raises:
        AnalysisParseError: If no JSON object can be decoded
    """
    if not response_text:
        raise AnalysisParseError("LLM returned an empty response", response_text)

    json_match = re.search(r"```json\s*(.*?)\s*```", response_text, re.DOTALL)
    if json_match:
        json_str = json_match.group(1)
    else:
        obj_match = re.search(r"\{[\s\S]*\}", response_text)
        if not obj_match:
            raise AnalysisParseError("LLM did not return valid JSON", response_text)
        json_str = obj_match.group(0)

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"LLM did not return valid JSON: {e}", response_text)

    if not isinstance(data, dict):
        raise AnalysisParseError(f"Expected a JSON object, got {type(data).__name__}", response_text)
    return data


def parse_if_stringified(value: Any) -> Any:
    """Decode values that arrive as JSON-encoded strings."""
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not (text.startswith("[") or text.startswith("{") or "\\n" in text):
        return value

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Literal \n sequences and escaped quotes are common in these strings
    cleaned = re.sub(r"\s+", " ", text.replace("\\n", "").replace("\\'", "'")).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        return value


def ensure_list(value: Any, fallback: Optional[list] = None) -> list:
    parsed = parse_if_stringified(value)
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        return [parsed]
    if parsed not in (None, ""):
        logger.warning(f"Could not convert {type(parsed).__name__} to a list")
    return list(fallback or [])


def _score(value: Any) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    return int(round(min(max(score, 0.0), 100.0)))


def normalize_analysis(raw: dict, extracted: Optional[dict] = None) -> dict:
    """Coerce a raw analysis into the shape the rest of ArchLens expects.

    Args:
        raw: JSON object from the analysis stage
        extracted: JSON object from the extraction stage, used as a fallback
            for components, connections and summary

    Returns:
        Dict with list fields guaranteed to be lists, scores clamped to
        0-100, an overall score and the total estimated savings
    """
    extracted = extracted or {}
    result = dict(raw)

    for name in LIST_FIELDS:
        fallback = ensure_list(extracted.get(name)) if name in ("components", "connections") else []
        result[name] = ensure_list(raw.get(name), fallback)
        if name in ("components", "connections") and not result[name]:
            result[name] = fallback

    # Scores can be at the root or nested under "scores"
    nested = raw.get("scores") if isinstance(raw.get("scores"), dict) else {}
    for name in SCORE_FIELDS:
        value = raw.get(name)
        if value is None:
            value = nested.get(name)
        result[name] = _score(value)
    result.pop("scores", None)

    result["overallScore"] = int(round(sum(result[name] for name in SCORE_FIELDS) / len(SCORE_FIELDS)))

    savings = 0.0
    for issue in result["costIssues"]:
        if isinstance(issue, dict):
            try:
                savings += float(issue.get("estimatedSavings") or 0)
            except (TypeError, ValueError):
                continue
    result["estimatedSavingsUSD"] = savings

    summary = extracted.get("summary") or ""
    result["summary"] = raw.get("summary") or summary or "Architecture analysis completed"
    result["architectureDescription"] = (
        raw.get("architectureDescription") or summary or "Detailed architecture analysis"
    )
    return result
