"""
Score normalization and the short-response duration cap.
"""

import logging
from typing import Any, Dict, List, Tuple

from ..models import SCORE_CATEGORIES

logger = logging.getLogger("mmi_worker")

SHORT_RESPONSE_MAX_SEC = 120
SHORT_RESPONSE_SCORE_CAP = 30
DURATION_KEYWORDS = ("duration", "length", "time")

DURATION_CAP_NOTE = (
    "Response duration was under 2 minutes, so every score has been capped at "
    f"{SHORT_RESPONSE_SCORE_CAP}. A short answer cannot show enough depth; "
    "aim for a 4-5 minute response."
)


def normalize_scores(raw_scores: Dict[str, Any]) -> Dict[str, int]:
    """Integer 0-100 score for every category, zero-filled when missing"""
    scores = {}
    for category in SCORE_CATEGORIES:
        value = raw_scores.get(category, 0)
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Non-numeric score for {category}: {value!r}, using 0")
            score = 0
        scores[category] = max(0, min(100, score))
    return scores


def mentions_duration(feedback: List[Dict[str, str]]) -> bool:
    for item in feedback:
        note = str(item.get("note", "")).lower()
        if any(keyword in note for keyword in DURATION_KEYWORDS):
            return True
    return False


def apply_duration_cap(scores: Dict[str, int], feedback: List[Dict[str, str]],
                       total_duration: float) -> Tuple[Dict[str, int], List[Dict[str, str]]]:
    """
    Cap scores of short responses and disclose the cap in feedback.

    Responses of two minutes or less have every category clamped to 30 and
    gain a leading 00:00 note, unless a note already talks about duration.
    Applying the cap twice gives the same result as applying it once.

    Returns:
        Tuple of (scores, feedback) as new objects
    """
    scores = dict(scores)
    feedback = list(feedback)

    if total_duration > SHORT_RESPONSE_MAX_SEC:
        return scores, feedback

    capped = {category: min(score, SHORT_RESPONSE_SCORE_CAP) for category, score in scores.items()}
    if capped != scores:
        logger.info(f"Capped scores at {SHORT_RESPONSE_SCORE_CAP} for a {total_duration:.1f}s response")

    if not mentions_duration(feedback):
        feedback.insert(0, {"ts": "00:00", "note": DURATION_CAP_NOTE})

    return capped, feedback


def post_process(raw_scores: Dict[str, Any], feedback: List[Dict[str, str]],
                 total_duration: float) -> Tuple[Dict[str, int], List[Dict[str, str]]]:
    """Normalize raw assessor scores then apply the duration cap"""
    return apply_duration_cap(normalize_scores(raw_scores), feedback, total_duration)
