"""
Transcript ingestion and meeting lifecycle.

upload_transcript drives a meeting through its processing states:

    PROCESSING ──► COMPLETED
        │
        └──────► FAILED

The meeting row is committed in PROCESSING before the Anthropic call so that a
failure mid-call always leaves an inspectable record. Summary, participants,
action items and the COMPLETED transition are then written in a single unit of
work; on any failure that unit is rolled back and the meeting is marked FAILED
with the error text before the error is raised again.
"""

import logging
import math
from functools import lru_cache
from typing import Any, Dict, Optional

from ..core.exceptions import (
    InvalidStatusTransition,
    MeetingNotFoundError,
    RecallError,
    TranscriptProcessingError,
)
from ..db.database import UnitOfWork
from ..db.queries import (
    count_meetings,
    create_action_items,
    create_meeting,
    create_participants,
    create_processing_log,
    create_summary,
    delete_meeting,
    find_or_create_series,
    get_action_items_by_meeting,
    get_meeting,
    get_participants_by_meeting,
    get_summary_by_meeting,
    list_meetings,
    update_meeting,
)
from ..models.analysis import AnalysisResult
from ..models.meeting import ProcessingStatus
from .anthropic_client import AnalysisClient, AnthropicClient
from .response_extractor import extract_analysis
from .settings_service import SettingsService
from .transcript_parser import parse_filename

logger = logging.getLogger("recall-context.meetings")

AI_ANALYSIS = "AI_ANALYSIS"

ALLOWED_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED},
    ProcessingStatus.PROCESSING: {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED},
    ProcessingStatus.COMPLETED: set(),
    ProcessingStatus.FAILED: set(),
}

def build_page(items, page: int, size: int, total: int) -> Dict[str, Any]:
    return {
        "items": items,
        "page": page,
        "size": size,
        "total": total,
        "total_pages": math.ceil(total / size) if size else 0,
    }


class MeetingService:
    """Uploads, analyses and serves meetings."""

    def __init__(
        self,
        analysis_client: Optional[AnalysisClient] = None,
        settings_service: Optional[SettingsService] = None,
    ) -> None:
        self.analysis_client = analysis_client or AnthropicClient()
        self.settings_service = settings_service or SettingsService()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def upload_transcript(self, filename: str, content: str) -> Dict[str, Any]:
        """
        Upload and analyse a meeting transcript.

        Args:
            filename: Transcript filename, YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt
            content: Full transcript text

        Returns:
            dict: The meeting as stored after processing (COMPLETED)

        Raises:
            InvalidFilenameError: bad filename, nothing is stored
            ApiKeyNotConfiguredError, ExternalServiceError, MalformedResponseError,
            CredentialCryptoError: processing failed, the meeting is left FAILED
            TranscriptProcessingError: unexpected failure, the meeting is left FAILED
        """
        logger.info(f"Uploading transcript: {filename}")
        metadata = parse_filename(filename)

        with UnitOfWork() as uow:
            series = find_or_create_series(metadata.series_name, metadata.meeting_type, conn=uow.conn)
            meeting = create_meeting({
                "series_id": series["id"],
                "meeting_date": metadata.meeting_date,
                "meeting_type": metadata.meeting_type,
                "series_name": metadata.series_name,
                "original_filename": filename,
                "transcript_content": content,
                "processing_status": ProcessingStatus.PROCESSING.value,
            }, conn=uow.conn)
        meeting_id = meeting["id"]
        logger.info(f"Created meeting {meeting_id} in PROCESSING")

        try:
            api_key = self.settings_service.get_api_key()
            payload = self.analysis_client.analyze(content, api_key)
            analysis = extract_analysis(payload)
            self._store_analysis(meeting_id, analysis)
        except RecallError as e:
            logger.error(f"Error processing meeting {meeting_id}: {e}")
            self._record_failure(meeting_id, e)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error processing meeting {meeting_id}")
            self._record_failure(meeting_id, e)
            raise TranscriptProcessingError(
                "Failed to process transcript", {"meeting_id": meeting_id}
            ) from e

        logger.info(f"Successfully processed meeting {meeting_id}")
        return self.get_meeting(meeting_id, include_transcript=False)

    def _store_analysis(self, meeting_id: int, analysis: AnalysisResult) -> None:
        """Write the derived records and complete the meeting in one transaction"""
        with UnitOfWork() as uow:
            create_summary(meeting_id, {
                "key_points": analysis.key_points,
                "decisions": analysis.decisions,
                "summary_text": analysis.summary_text,
                "sentiment": analysis.sentiment,
                "tone": analysis.tone,
                "ai_metadata": analysis.ai_metadata,
            }, conn=uow.conn)
            if analysis.participants:
                create_participants(
                    meeting_id, [p.model_dump() for p in analysis.participants], conn=uow.conn
                )
            if analysis.action_items:
                create_action_items(
                    meeting_id, [a.model_dump() for a in analysis.action_items], conn=uow.conn
                )
            create_processing_log(meeting_id, AI_ANALYSIS, "SUCCESS", conn=uow.conn)
            self._transition(meeting_id, ProcessingStatus.COMPLETED, conn=uow.conn)
        logger.debug(
            f"Stored analysis for meeting {meeting_id}: {len(analysis.participants)} participants, "
            f"{len(analysis.action_items)} action items"
        )

    def _record_failure(self, meeting_id: int, error: Exception) -> None:
        message = str(error) or type(error).__name__
        try:
            with UnitOfWork() as uow:
                self._transition(meeting_id, ProcessingStatus.FAILED, error=message, conn=uow.conn)
                create_processing_log(meeting_id, AI_ANALYSIS, "FAILURE", message, conn=uow.conn)
        except Exception as e:
            # The caller still receives the original error
            logger.exception(f"Could not record failure for meeting {meeting_id}")
            logger.error(
                f"Meeting {meeting_id} left in PROCESSING: marking it FAILED failed ({type(e).__name__}: {e}). "
                f"Original error: {message}"
            )

    def _transition(self, meeting_id: int, new_status: ProcessingStatus, error: Optional[str] = None, conn=None) -> None:
        meeting = get_meeting(meeting_id, conn=conn)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        current = ProcessingStatus(meeting["processing_status"])
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(
                f"Cannot move meeting {meeting_id} from {current.value} to {new_status.value}",
                {"meeting_id": meeting_id, "from": current.value, "to": new_status.value}
            )
        update_meeting(meeting_id, {
            "processing_status": new_status.value,
            # Error text is kept only on FAILED meetings
            "processing_error": error if new_status is ProcessingStatus.FAILED else None,
        }, conn=conn)
        logger.info(f"Meeting {meeting_id}: {current.value} -> {new_status.value}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_meeting(self, meeting_id: int, include_transcript: bool = True) -> Dict[str, Any]:
        meeting = get_meeting(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        return self._to_response(meeting, include_transcript)

    def list_meetings(self, page: int = 0, size: int = 20) -> Dict[str, Any]:
        rows = list_meetings(limit=size, offset=page * size)
        items = [self._to_response(m, include_transcript=False) for m in rows]
        return build_page(items, page, size, count_meetings())

    def get_processing_status(self, meeting_id: int) -> Dict[str, Any]:
        meeting = get_meeting(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        return {
            "meeting_id": meeting["id"],
            "status": meeting["processing_status"],
            "error": meeting["processing_error"],
        }

    def delete_meeting(self, meeting_id: int) -> None:
        logger.info(f"Deleting meeting {meeting_id}")
        if not delete_meeting(meeting_id):
            raise MeetingNotFoundError(meeting_id)
        logger.info(f"Deleted meeting {meeting_id}")

    @staticmethod
    def _to_response(meeting: Dict[str, Any], include_transcript: bool) -> Dict[str, Any]:
        response = {
            "id": meeting["id"],
            "meeting_date": meeting["meeting_date"],
            "meeting_type": meeting["meeting_type"],
            "series_name": meeting["series_name"],
            "original_filename": meeting["original_filename"],
            "processing_status": meeting["processing_status"],
            "processing_error": meeting["processing_error"],
            "created_at": meeting["created_at"],
            "transcript_content": meeting["transcript_content"] if include_transcript else None,
            "summary": get_summary_by_meeting(meeting["id"]),
            "participants": get_participants_by_meeting(meeting["id"]),
            "action_items": get_action_items_by_meeting(meeting["id"]),
        }
        return response


@lru_cache()
def get_meeting_service() -> MeetingService:
    return MeetingService()
