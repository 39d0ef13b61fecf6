from fastapi import APIRouter, Depends, File, HTTPException, Path, Query, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool
import logging

from ..core.config import settings
from ..models.meeting import MeetingResponse, MeetingUploadRequest, Page, ProcessingStatusResponse
from ..services.meeting_service import MeetingService, get_meeting_service

logger = logging.getLogger("recall-context.routes")

router = APIRouter(prefix="/meetings", tags=["Meetings"])

@router.post("", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
def upload_transcript(
    request: MeetingUploadRequest,
    service: MeetingService = Depends(get_meeting_service)
):
    """
    Upload a transcript as JSON and analyse it.

    - **filename**: `YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt`
    - **content**: full transcript text

    The call blocks until the analysis is stored (COMPLETED) or has failed.
    On failure the meeting is kept with status FAILED and the error text.
    """
    return service.upload_transcript(request.filename, request.content)

@router.post("/upload", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
async def upload_transcript_file(
    file: UploadFile = File(..., description="Transcript .txt file"),
    service: MeetingService = Depends(get_meeting_service)
):
    """
    Upload a transcript file and analyse it.

    The file name carries the meeting metadata, in the same format as the JSON upload.
    """
    if not file.filename or not file.filename.lower().endswith(".txt"):
        raise HTTPException(status_code=400, detail="Only .txt transcript files are accepted")

    raw = await file.read()
    if len(raw) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail=f"File exceeds {settings.MAX_UPLOAD_SIZE} bytes")
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Transcript must be UTF-8 text")
    if not content.strip():
        raise HTTPException(status_code=400, detail="Transcript file is empty")

    logger.info(f"Received transcript file {file.filename} ({len(raw)} bytes)")
    # Analysis is blocking; keep it off the event loop
    return await run_in_threadpool(service.upload_transcript, file.filename, content)

@router.get("", response_model=Page[MeetingResponse])
def list_meetings(
    page: int = Query(0, ge=0, description="Page number, starting at 0"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    service: MeetingService = Depends(get_meeting_service)
):
    """List meetings, most recent meeting date first (transcripts omitted)."""
    return service.list_meetings(page, size)

@router.get("/{meeting_id}", response_model=MeetingResponse)
def get_meeting(
    meeting_id: int = Path(..., description="Meeting id"),
    service: MeetingService = Depends(get_meeting_service)
):
    """Meeting detail with transcript, summary, participants and action items."""
    return service.get_meeting(meeting_id, include_transcript=True)

@router.get("/{meeting_id}/processing-status", response_model=ProcessingStatusResponse)
def get_processing_status(
    meeting_id: int = Path(..., description="Meeting id"),
    service: MeetingService = Depends(get_meeting_service)
):
    return service.get_processing_status(meeting_id)

@router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meeting(
    meeting_id: int = Path(..., description="Meeting id"),
    service: MeetingService = Depends(get_meeting_service)
):
    """Delete a meeting together with its summary, participants, actions and logs."""
    service.delete_meeting(meeting_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
