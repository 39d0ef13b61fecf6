from enum import Enum
from pydantic import BaseModel, Field
from typing import Generic, List, Optional, TypeVar
from datetime import date, datetime

T = TypeVar("T")

class ProcessingStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class MeetingUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, description="YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt")
    content: str = Field(..., min_length=1, description="Full transcript text")

class SummaryOut(BaseModel):
    key_points: List[str] = []
    decisions: List[str] = []
    summary_text: str
    sentiment: Optional[str] = None
    tone: Optional[str] = None

class ParticipantOut(BaseModel):
    id: int
    name: str
    role: Optional[str] = None

class MeetingActionOut(BaseModel):
    id: int
    description: str
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    status: str
    priority: Optional[str] = None

class MeetingResponse(BaseModel):
    id: int
    meeting_date: datetime
    meeting_type: str
    series_name: Optional[str] = None
    original_filename: str
    processing_status: ProcessingStatus
    processing_error: Optional[str] = None
    created_at: datetime
    transcript_content: Optional[str] = None
    summary: Optional[SummaryOut] = None
    participants: List[ParticipantOut] = []
    action_items: List[MeetingActionOut] = []

class ProcessingStatusResponse(BaseModel):
    meeting_id: int
    status: ProcessingStatus
    error: Optional[str] = None

class Page(BaseModel, Generic[T]):
    items: List[T]
    page: int
    size: int
    total: int
    total_pages: int
