"""DTOs for Tasks app."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from apps.identity.dtos import UserSummaryDTO


@dataclass(frozen=True)
class AttachmentDTO:
    id: UUID
    filename: str
    original_name: str
    path: str
    url: str
    size: int
    mimetype: str
    uploaded_at: datetime


@dataclass(frozen=True)
class TaskDTO:
    id: UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: date
    assigned_to: UserSummaryDTO
    created_by: Optional[UserSummaryDTO]
    created_at: datetime
    updated_at: datetime
    documents: List[AttachmentDTO] = field(default_factory=list)


@dataclass
class TaskFormData:
    """Raw task fields as submitted in the multipart form."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    assigned_to: Optional[str] = None
