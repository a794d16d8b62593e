"""
Domain models for the assessment worker.

Defines the core data structures used throughout the system,
providing type safety and clear interfaces between components.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime


class JobStatus:
    """Allowed values of Job.status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


SCORE_CATEGORIES = (
    "Structure",
    "Communication",
    "Empathy",
    "Ethics",
    "Professionalism",
    "Motivation",
    "Teamwork",
    "Overall",
)

OVERALL_CATEGORY = "Overall"


def zero_scores() -> Dict[str, int]:
    return {category: 0 for category in SCORE_CATEGORIES}


def zero_metrics(head_pose_notes: str = "") -> Dict[str, Any]:
    return {
        "wpm": 0,
        "fillerRate": 0,
        "longestPauseSec": 0,
        "eyeContactPct": None,
        "headPoseNotes": head_pose_notes
    }


@dataclass
class Job:
    """Represents an analysis job from the queue table"""
    id: str
    attempt_id: Optional[str]
    video_url: Optional[str]
    status: str
    retry_count: int = 0
    max_retries: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


@dataclass
class Attempt:
    """Represents the user-facing attempt that receives the analysis"""
    id: str
    station_ids: List[str] = field(default_factory=list)
    transcript: Optional[str] = None
    scores: Optional[Dict[str, int]] = None
    metrics: Optional[Dict[str, Any]] = None
    feedback: List[Dict[str, str]] = field(default_factory=list)
    recommended_articles: List[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class TranscriptSegment:
    """Represents a transcript segment"""
    start: float
    end: float
    text: str


@dataclass
class Station:
    """Interview station used as recommendation context"""
    id: str
    title: str = ""
    prompt: str = ""
    themes: List[str] = field(default_factory=list)
    role_play: bool = False
    graph_data: bool = False
    difficulty: Optional[str] = None


@dataclass
class Article:
    """Study article from the read-only catalog"""
    id: str
    title: str = ""
    category: str = ""
    tags: List[str] = field(default_factory=list)
    difficulty: Optional[str] = None


@dataclass
class BlobObject:
    """Downloaded blob contents"""
    path: str
    data: bytes
    size: int

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass
class TranscriptionResult:
    """Represents the transcriber output"""
    text: str
    segments: List[TranscriptSegment]


@dataclass
class AssessmentResult:
    """Represents the assessor output after backfilling"""
    scores: Dict[str, int]
    metrics: Dict[str, Any]
    feedback: List[Dict[str, str]]


@dataclass
class AttemptAnalysis:
    """The full set of fields written onto an attempt"""
    transcript: str
    scores: Dict[str, int]
    metrics: Dict[str, Any]
    feedback: List[Dict[str, str]]
    recommended_articles: List[str]

    def to_record(self) -> Dict[str, Any]:
        return {
            'transcript': self.transcript,
            'scores': self.scores,
            'metrics': self.metrics,
            'feedback': self.feedback,
            'recommended_articles': self.recommended_articles
        }


@dataclass
class ProcessingResult:
    """Represents the result of processing one job run"""
    job_id: str
    status: str
    usable: Optional[bool] = None
    error: Optional[str] = None
    processing_time_sec: Optional[float] = None
