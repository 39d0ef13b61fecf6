"""
Filename parsing for uploaded transcripts.

Transcripts are named YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt, for example
2024-03-15_1400_Standup_Engineering.txt. Everything the backend knows about a
meeting before analysis comes from that name.
"""

import logging
import re
from datetime import datetime

from ..core.exceptions import InvalidFilenameError
from ..models.analysis import TranscriptMetadata

logger = logging.getLogger("recall-context.parser")

EXPECTED_FORMAT = "YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt"

FILENAME_PATTERN = re.compile(
    r"([0-9]{4}-[0-9]{2}-[0-9]{2})_([0-9]{4})_([A-Za-z0-9]+)_([A-Za-z0-9]+)\.txt"
)

VALID_MEETING_TYPES = (
    "OneOnOne", "Standup", "Programme", "Retro", "Governance", "Leadership",
    "Vendor", "Adhoc", "Incident", "Interview", "Review", "Dictation",
)

def is_valid_meeting_type(meeting_type: str) -> bool:
    return meeting_type in VALID_MEETING_TYPES

def parse_filename(filename: str) -> TranscriptMetadata:
    """
    Extract meeting metadata from a transcript filename.

    Args:
        filename: Name of the uploaded transcript file

    Returns:
        TranscriptMetadata: meeting date/time (naive), meeting type and series name

    Raises:
        InvalidFilenameError: the name does not match the expected format, the
            meeting type is unknown or the date/time is not a real calendar value
    """
    logger.debug(f"Parsing filename: {filename}")

    match = FILENAME_PATTERN.fullmatch(filename or "")
    if not match:
        raise InvalidFilenameError(
            f"Invalid filename format: {filename}. Expected format: {EXPECTED_FORMAT}",
            {"filename": filename, "expected_format": EXPECTED_FORMAT}
        )

    date_str, time_str, meeting_type, series_name = match.groups()

    if not is_valid_meeting_type(meeting_type):
        raise InvalidFilenameError(
            f"Invalid meeting type: {meeting_type}. Valid types: {', '.join(VALID_MEETING_TYPES)}",
            {"meeting_type": meeting_type, "valid_types": list(VALID_MEETING_TYPES)}
        )

    try:
        meeting_date = datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H%M")
    except ValueError as e:
        raise InvalidFilenameError(
            f"Invalid date/time format in filename: {filename}",
            {"filename": filename}
        ) from e

    logger.info(f"Parsed filename: date={meeting_date}, type={meeting_type}, series={series_name}")
    return TranscriptMetadata(
        meeting_date=meeting_date,
        meeting_type=meeting_type,
        series_name=series_name,
    )
