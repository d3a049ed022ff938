"""
ISO 8601 duration parsing and length bucketing.
"""
import re
from typing import Optional

DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

# YouTube's own filter buckets: short < 4 min, medium 4-20 min, long > 20 min
SHORT_MAX_SECONDS = 240
MEDIUM_MAX_SECONDS = 1200


def parse_duration(duration_str: Optional[str]) -> int:
    """Parse ISO 8601 duration (PT1H2M3S) to seconds. 0 when unparseable."""
    match = DURATION_RE.fullmatch((duration_str or "").strip())
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def classify_duration(seconds: int) -> Optional[str]:
    """Bucket a length in seconds.

    Returns:
        "short", "medium" or "long"; None when the length is unknown (0).
    """
    if seconds <= 0:
        return None
    if seconds < SHORT_MAX_SECONDS:
        return "short"
    if seconds <= MEDIUM_MAX_SECONDS:
        return "medium"
    return "long"
