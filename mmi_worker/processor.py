"""
Attempt processing pipeline.

Takes a claimed job through download, transcription, the speech-quality gate,
assessment, score post-processing and article recommendation, and writes the
result onto the job's attempt. Job status transitions are left to the
orchestrator.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .adapters.base import JobStoreAdapter, BlobStoreAdapter, CatalogAdapter
from .errors import AttemptNotFoundError, VideoValidationError, FileTooLargeError
from .models import Job, Attempt, AttemptAnalysis, BlobObject, Station
from .pipeline import quality_gate
from .pipeline.assess import Assessor
from .pipeline.recommend import recommend_articles
from .pipeline.scoring import post_process
from .pipeline.transcribe import Transcriber
from .pipeline.util import (
    SUPPORTED_EXTENSIONS, MAX_UPLOAD_BYTES,
    build_timestamped_transcript, file_extension, format_size_mb, split_storage_path
)

logger = logging.getLogger("mmi_worker")


class AttemptProcessor:
    """Runs the analysis steps for one job"""

    def __init__(self, store: JobStoreAdapter, blobs: BlobStoreAdapter, catalog: CatalogAdapter,
                 transcriber: Transcriber, assessor: Assessor):
        self.store = store
        self.blobs = blobs
        self.catalog = catalog
        self.transcriber = transcriber
        self.assessor = assessor

    def process(self, job: Job) -> bool:
        """
        Analyze the recording of a job and persist the result on its attempt.

        Args:
            job: Job already claimed by the orchestrator

        Returns:
            True if the recording passed the quality gate, False if the
            no-speech result was written instead
        """
        attempt = self.store.get_attempt(job.attempt_id) if job.attempt_id else None
        if attempt is None:
            raise AttemptNotFoundError(f"Attempt not found: {job.attempt_id}")

        recording = self._fetch_recording(job)

        logger.info(f"TRANSCRIBE: Starting transcription for job {job.id}")
        transcription = self.transcriber.transcribe(recording.data, recording.filename, job.id)

        verdict = quality_gate.evaluate(transcription.text, transcription.segments)
        logger.info(
            f"GATE: job {job.id} is {verdict.verdict} "
            f"({verdict.word_count} words, {verdict.total_duration:.1f}s)"
        )
        if not verdict.usable:
            logger.warning(f"No usable speech for job {job.id}: {verdict.reason}")
            self._persist(attempt.id, quality_gate.not_usable_analysis(transcription.text))
            return False

        station = self._load_station(attempt)

        if transcription.segments:
            prompt_transcript = build_timestamped_transcript(transcription.segments)
        else:
            logger.warning(f"No segments for job {job.id}, assessing the plain transcript")
            prompt_transcript = transcription.text.strip()

        logger.info(f"ASSESS: Starting assessment for job {job.id}")
        assessment = self.assessor.assess(prompt_transcript, station, job.id)
        scores, feedback = post_process(assessment.scores, assessment.feedback, verdict.total_duration)

        logger.info(f"RECOMMEND: Ranking articles for job {job.id}")
        recommended = recommend_articles(scores, self.catalog.list_articles(), station)

        self._persist(attempt.id, AttemptAnalysis(
            transcript=transcription.text,
            scores=scores,
            metrics=assessment.metrics,
            feedback=feedback,
            recommended_articles=recommended
        ))
        return True

    def _fetch_recording(self, job: Job) -> BlobObject:
        """Confirm the recording exists, is a supported format and fits the upload limit"""
        video_url = job.video_url
        if not isinstance(video_url, str) or not video_url.strip():
            raise VideoValidationError(f"Job {job.id} has no video_url")

        path = video_url.strip().lstrip("/")
        folder, name = split_storage_path(path)

        if name not in self.blobs.list(folder):
            raise VideoValidationError(f"Video file not found in storage: {path}")

        extension = file_extension(name)
        if extension not in SUPPORTED_EXTENSIONS:
            raise VideoValidationError(
                f"Unsupported file format '{extension or name}'. "
                f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )

        recording = self.blobs.download(path, max_bytes=MAX_UPLOAD_BYTES)
        if recording.size == 0:
            raise VideoValidationError(f"Video file is empty: {path}")

        if recording.size > MAX_UPLOAD_BYTES:
            raise FileTooLargeError(
                f"Recording is {format_size_mb(recording.size)}, above the "
                f"{format_size_mb(MAX_UPLOAD_BYTES)} size limit. "
                "Please record a shorter answer or use a lower video quality."
            )

        return recording

    def _load_station(self, attempt: Attempt) -> Optional[Station]:
        if not attempt.station_ids:
            return None
        return self.catalog.get_station(attempt.station_ids[0])

    def _persist(self, attempt_id: str, analysis: AttemptAnalysis) -> None:
        fields = analysis.to_record()
        fields['updated_at'] = datetime.now(timezone.utc)
        self.store.update_attempt(attempt_id, fields)
