"""Job record data model for async image stylization."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class JobRecord(BaseModel):
    """Tracks the lifecycle of one upload-to-stylization job."""
    id: int
    original_file_name: str
    original_path: str
    processed_path: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


class Analysis(BaseModel):
    """Human-readable commentary about a stylized result."""
    model_config = ConfigDict(populate_by_name=True)

    description: str
    style_notes: List[str] = Field(default_factory=list, alias="styleNotes")

    def is_usable(self) -> bool:
        return bool(self.description.strip()) and any(n.strip() for n in self.style_notes)
