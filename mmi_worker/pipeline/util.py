import re
from typing import List, Tuple

from ..models import TranscriptSegment


# Transcriber upload constraints
SUPPORTED_EXTENSIONS = frozenset({
    "flac", "m4a", "mp3", "mp4", "mpeg", "mpga", "oga", "ogg", "wav", "webm"
})
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

_WORD_RE = re.compile(r"\S+")


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS"""
    seconds = max(0.0, float(seconds or 0))
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def build_timestamped_transcript(segments: List[TranscriptSegment]) -> str:
    """Render segments as '[MM:SS] text' lines in chronological order"""
    ordered = sorted(segments, key=lambda segment: segment.start)
    return "\n".join(
        f"[{format_timestamp(segment.start)}] {segment.text.strip()}"
        for segment in ordered
    )


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text or ""))


def split_storage_path(path: str) -> Tuple[str, str]:
    """Split 'folder/sub/name.ext' into ('folder/sub', 'name.ext')"""
    path = path.strip().lstrip("/")
    if "/" not in path:
        return "", path
    folder, name = path.rsplit("/", 1)
    return folder, name


def file_extension(filename: str) -> str:
    """Lowercase extension without the dot, '' if there is none"""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def format_size_mb(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):.1f} MB"
