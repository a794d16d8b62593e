import logging
from typing import Any, List, Optional

from openai import OpenAI, OpenAIError

from ..errors import TranscriptionError
from ..models import TranscriptSegment, TranscriptionResult

logger = logging.getLogger("mmi_worker")


class Transcriber:
    """Speech-to-text through the OpenAI transcription endpoint"""

    def __init__(self, client: Optional[OpenAI] = None, model: str = "whisper-1",
                 timeout: float = 120.0):
        self.client = client or OpenAI(timeout=timeout)
        self.model = model

    def transcribe(self, data: bytes, filename: str, job_id: str = "") -> TranscriptionResult:
        """
        Transcribe a recording and return text plus ordered segments

        Raises:
            TranscriptionError: the request failed or the response lacks text
        """
        logger.info(f"Transcribing {filename} for job {job_id} ({len(data)} bytes)")

        try:
            response = self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename, data),
                response_format="verbose_json",
                timestamp_granularities=["segment"]
            )
        except OpenAIError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        return parse_transcription(response)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_transcription(response: Any) -> TranscriptionResult:
    """Convert a verbose_json transcription response into a TranscriptionResult"""
    text = _field(response, "text")
    if text is None:
        raise TranscriptionError("Transcription response is missing the transcript text")

    segments: List[TranscriptSegment] = []
    for segment in _field(response, "segments") or []:
        try:
            segments.append(TranscriptSegment(
                start=float(_field(segment, "start")),
                end=float(_field(segment, "end")),
                text=str(_field(segment, "text", "")).strip()
            ))
        except (TypeError, ValueError) as e:
            raise TranscriptionError(f"Malformed transcription segment: {e}") from e

    segments.sort(key=lambda segment: segment.start)

    logger.info(f"Transcription returned {len(segments)} segments")
    return TranscriptionResult(
        text=str(text),
        segments=segments
    )
