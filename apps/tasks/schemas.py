"""
API Schemas for Tasks app.
Ninja schemas for response serialization.
"""
from typing import List, Optional
from uuid import UUID
from datetime import date, datetime
from ninja import Schema


class UserSummaryOut(Schema):
    id: UUID
    name: str
    email: str


class AttachmentOut(Schema):
    id: UUID
    filename: str
    original_name: str
    path: str
    url: str
    size: int
    mimetype: str
    uploaded_at: datetime


class TaskOut(Schema):
    id: UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: date
    assigned_to: UserSummaryOut
    created_by: Optional[UserSummaryOut] = None
    documents: List[AttachmentOut] = []
    created_at: datetime
    updated_at: datetime


class MessageOut(Schema):
    message: str
