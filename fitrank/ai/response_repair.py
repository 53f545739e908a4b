"""Repair ladder for ranking replies.

Generative models often wrap JSON in markdown fences or leave trailing commas
behind. Each stage below is tried in order and the first one producing a
valid ``{"recommendations": [...]}`` document wins.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from fitrank.errors import RankingParseError
from fitrank.metrics import ranking_repair_stage_total

logger = logging.getLogger(__name__)

RESULTS_KEY = "recommendations"

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_RESULTS_ARRAY_START_RE = re.compile(r'"' + RESULTS_KEY + r'"\s*:\s*\[')
_DECODER = json.JSONDecoder()


class RepairStage(str, Enum):
    """Stage of the ladder that produced the parsed document."""

    STRICT = "strict"
    FENCES_STRIPPED = "fences_stripped"
    TRAILING_COMMAS = "trailing_commas"
    EXTRACTED_ARRAY = "extracted_array"


@dataclass
class RepairResult:
    document: Dict[str, Any]
    stage: RepairStage

    @property
    def entries(self) -> List[Any]:
        return self.document[RESULTS_KEY]


def strip_fences(text: str) -> str:
    """Remove markdown code fences around the payload, if present."""
    stripped = text.strip()
    match = _FENCE_RE.search(stripped)
    if match:
        return match.group(1).strip()
    # Unterminated fence (reply cut off or closing marker missing)
    if stripped.startswith("```"):
        stripped = stripped[3:]
        if stripped[:4].lower() == "json":
            stripped = stripped[4:]
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip()


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _as_document(parsed: Any) -> Optional[Dict[str, Any]]:
    if isinstance(parsed, list):
        return {RESULTS_KEY: parsed}
    if isinstance(parsed, dict) and isinstance(parsed.get(RESULTS_KEY), list):
        return parsed
    return None


def _try_parse(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return _as_document(parsed)


def _extract_array(text: str) -> Optional[Dict[str, Any]]:
    """Decode the results array in place, ignoring whatever prose follows it."""
    match = _RESULTS_ARRAY_START_RE.search(text)
    if not match:
        return None
    tail = strip_trailing_commas(text[match.end() - 1:])
    try:
        parsed, _ = _DECODER.raw_decode(tail)
    except json.JSONDecodeError:
        return None
    return _as_document(parsed)


def repair_ranking_response(text: str) -> RepairResult:
    """
    Parse a ranking reply, repairing it if needed.

    Args:
        text: Raw reply text

    Returns:
        RepairResult with the parsed document and the stage that succeeded

    Raises:
        RankingParseError: If no stage yields a valid document
    """
    if not text or not text.strip():
        raise RankingParseError("Empty ranking reply", raw_text=text or "")

    document = _try_parse(text.strip())
    stage = RepairStage.STRICT

    if document is None:
        text = strip_fences(text)
        document = _try_parse(text)
        stage = RepairStage.FENCES_STRIPPED

    if document is None:
        document = _try_parse(strip_trailing_commas(text))
        stage = RepairStage.TRAILING_COMMAS

    if document is None:
        document = _extract_array(text)
        stage = RepairStage.EXTRACTED_ARRAY

    if document is None:
        logger.error(f"Failed to parse ranking reply: {text[:200]}")
        raise RankingParseError("Ranking reply is not valid JSON after repair", raw_text=text)

    if stage != RepairStage.STRICT:
        logger.info(f"Ranking reply repaired at stage {stage.value}")
    ranking_repair_stage_total.labels(stage=stage.value).inc()
    return RepairResult(document=document, stage=stage)
