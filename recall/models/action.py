from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

class ActionItemResponse(BaseModel):
    id: int
    meeting_id: int
    meeting_type: str
    meeting_date: datetime
    description: str
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    status: str
    priority: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class ActionUpdateRequest(BaseModel):
    status: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[str] = None
    notes: Optional[str] = None

class ActionStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
