from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from .domain import ComplaintPriority, ComplaintStatus, utcnow

SUBJECT_MAX = 100
DESCRIPTION_MAX = 500
ADMIN_NOTE_MAX = 300


class Complaint(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="user.id", index=True)
    category: str = Field(nullable=False)
    subject: str = Field(sa_column=Column("subject", String(SUBJECT_MAX), nullable=False))
    description: str = Field(
        sa_column=Column("description", String(DESCRIPTION_MAX), nullable=False)
    )
    status: str = Field(default=ComplaintStatus.pending.value, index=True)
    priority: str = Field(default=ComplaintPriority.medium.value)
    admin_note: str = Field(
        default="", sa_column=Column("admin_note", String(ADMIN_NOTE_MAX), nullable=False, default="")
    )
    resolved_at: Optional[datetime] = Field(
        default=None, sa_column=Column("resolved_at", DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column("created_at", DateTime(timezone=True))
    )
    updated_at: Optional[datetime] = Field(
        default=None, sa_column=Column("updated_at", DateTime(timezone=True), nullable=True)
    )
