"""
Speech-quality gate.

Decides whether a transcription contains enough speech to be worth sending
to the assessor. Recordings that fail the gate still complete successfully,
with a zero result explaining that no speech was detected.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..models import AttemptAnalysis, TranscriptSegment, zero_scores, zero_metrics
from .util import count_words

logger = logging.getLogger("mmi_worker")

MIN_WORD_COUNT = 15
MIN_TRANSCRIPT_CHARS = 50
# Speaking-rate floor only applies to recordings longer than this
RATE_CHECK_MIN_DURATION_SEC = 10.0
MIN_WORDS_PER_SECOND = 0.3

USABLE = "usable"
NOT_USABLE = "not_usable"

NO_SPEECH_NOTE = "No meaningful speech was detected. Please record again with clear audio."


@dataclass(frozen=True)
class GateVerdict:
    verdict: str
    word_count: int
    total_duration: float
    reason: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.verdict == USABLE


def total_duration(segments: List[TranscriptSegment]) -> float:
    """End time of the last segment, 0 when there are none"""
    if not segments:
        return 0.0
    return float(segments[-1].end)


def evaluate(transcript: str, segments: List[TranscriptSegment]) -> GateVerdict:
    """Classify a transcription as usable or not usable"""
    transcript = transcript or ""
    word_count = count_words(transcript)
    duration = total_duration(segments)

    reason = None
    if word_count < MIN_WORD_COUNT:
        reason = f"only {word_count} words"
    elif len(transcript.strip()) < MIN_TRANSCRIPT_CHARS:
        reason = f"only {len(transcript.strip())} characters"
    elif duration > RATE_CHECK_MIN_DURATION_SEC and word_count / duration < MIN_WORDS_PER_SECOND:
        reason = f"{word_count / duration:.2f} words/sec over {duration:.1f}s"

    verdict = NOT_USABLE if reason else USABLE
    logger.debug(f"Quality gate: {verdict} ({word_count} words, {duration:.1f}s)")
    return GateVerdict(verdict=verdict, word_count=word_count, total_duration=duration, reason=reason)


def not_usable_analysis(transcript: str) -> AttemptAnalysis:
    """Canned zero result written for recordings without analyzable speech"""
    return AttemptAnalysis(
        transcript=transcript or "",
        scores=zero_scores(),
        metrics=zero_metrics("No speech detected"),
        feedback=[{"ts": "00:00", "note": NO_SPEECH_NOTE}],
        recommended_articles=[]
    )
