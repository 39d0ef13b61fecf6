import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("recall-context.analysis")

_DUE_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

class TranscriptMetadata(BaseModel):
    """Metadata carried by a transcript filename"""
    model_config = ConfigDict(frozen=True)

    meeting_date: datetime
    meeting_type: str
    series_name: str


class ParticipantData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    role: Optional[str] = None


class ActionItemData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    assignee: Optional[str] = None
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    priority: Optional[str] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def lenient_due_date(cls, value: Any) -> Optional[date]:
        """A missing or unreadable due date becomes None instead of failing the item"""
        if value is None or isinstance(value, date):
            return value
        if isinstance(value, str) and _DUE_DATE_PATTERN.match(value.strip()):
            try:
                return datetime.strptime(value.strip(), "%Y-%m-%d").date()
            except ValueError:
                pass
        if value != "":
            logger.warning(f"Invalid due date format: {value!r}")
        return None


class AnalysisResult(BaseModel):
    """Meeting analysis returned by the model, plus provenance metadata"""
    model_config = ConfigDict(populate_by_name=True)

    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    decisions: List[str] = Field(default_factory=list)
    summary_text: str = Field(alias="summaryText")
    sentiment: Optional[str] = None
    tone: Optional[str] = None
    participants: List[ParticipantData] = Field(default_factory=list)
    action_items: List[ActionItemData] = Field(default_factory=list, alias="actionItems")
    ai_metadata: Dict[str, Any] = Field(default_factory=dict, alias="aiMetadata")
