import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import AssessmentError, AssessmentContractError
from ..models import AssessmentResult, Station, SCORE_CATEGORIES, zero_metrics
from .util import format_timestamp

logger = logging.getLogger("mmi_worker")


_CATEGORY_LIST = ", ".join(SCORE_CATEGORIES)

SYSTEM_PROMPT = f"""You are a strict UK MMI (multiple mini interview) examiner for medical school admissions.
You receive a timestamped transcript of a candidate answering one station.
Return a single JSON object with exactly these keys:
- "scores": an object with integer scores from 0 to 100 for {_CATEGORY_LIST}
- "metrics": an object with "wpm" (words per minute), "fillerRate" (filler words per minute),
  "longestPauseSec", "eyeContactPct" (null, video is not analysed) and "headPoseNotes" (string)
- "feedback": a list of objects {{"ts": "MM:SS", "note": "..."}} pointing at specific moments
Be critical. Do not reward length or confidence without substance."""


class FeedbackItem(BaseModel):
    """One timestamped feedback note"""
    ts: str = Field(description="Timestamp in MM:SS")
    note: str = Field(description="Feedback tied to that moment")

    @field_validator("ts", mode="before")
    @classmethod
    def coerce_seconds(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return format_timestamp(value)
        return value


class AssessmentPayload(BaseModel):
    """Structured output expected from the assessor"""
    scores: Dict[str, Any]
    metrics: Optional[Dict[str, Any]] = None
    feedback: Optional[List[FeedbackItem]] = None


class Assessor:
    """Rubric scoring through the OpenAI chat completions endpoint"""

    def __init__(self, client: Optional[OpenAI] = None, model: str = "gpt-4o-mini",
                 max_tokens: int = 1200, temperature: float = 0.3, timeout: float = 120.0):
        self.client = client or OpenAI(timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def assess(self, timestamped_transcript: str, station: Optional[Station] = None,
               job_id: str = "") -> AssessmentResult:
        """
        Score a timestamped transcript

        Raises:
            AssessmentError: request failed or the reply is not valid JSON
            AssessmentContractError: the reply has no scores object
        """
        logger.info(f"Assessing transcript for job {job_id} with {self.model}")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_message(timestamped_transcript, station)}
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except OpenAIError as e:
            raise AssessmentError(f"Assessment request failed: {e}") from e

        if not response.choices:
            raise AssessmentError("Assessment response contained no choices")

        return parse_assessment(response.choices[0].message.content)


def build_user_message(timestamped_transcript: str, station: Optional[Station]) -> str:
    parts = []
    if station:
        parts.append(f"Station: {station.title}")
        if station.prompt:
            parts.append(f"Prompt: {station.prompt}")
        if station.themes:
            parts.append(f"Themes: {', '.join(station.themes)}")
        parts.append("")
    parts.append("Transcript:")
    parts.append(timestamped_transcript)
    return "\n".join(parts)


def parse_assessment(content: Optional[str]) -> AssessmentResult:
    """Parse the assessor reply, backfilling optional fields"""
    if not content:
        raise AssessmentError("Assessment response was empty")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise AssessmentError(f"Assessment response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AssessmentError("Assessment response is not a JSON object")

    if not isinstance(data.get("scores"), dict):
        raise AssessmentContractError("Assessment response is missing the scores object")

    try:
        payload = AssessmentPayload(**data)
    except ValidationError as e:
        raise AssessmentError(f"Assessment response failed validation: {e}") from e

    if payload.metrics is None:
        logger.warning("Assessment response had no metrics, using zeroed metrics")
    if payload.feedback is None:
        logger.warning("Assessment response had no feedback, using an empty list")

    return AssessmentResult(
        scores=payload.scores,
        metrics=payload.metrics if payload.metrics is not None else zero_metrics(),
        feedback=[item.model_dump() for item in payload.feedback or []]
    )
