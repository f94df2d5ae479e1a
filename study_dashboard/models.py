"""SQLModel models for the Study Dashboard.

``StorageEntry`` is the only table: a namespaced key-value store. The
domain types below are not tables; whole collections of them are
serialized as JSON text under a single storage key.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlmodel import Field, SQLModel

ADMIN_ROLE = "admin"
STUDENT_ROLE = "student"


class StorageEntry(SQLModel, table=True):
    """One value of one client's key-value store."""

    namespace: str = Field(primary_key=True)
    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ===================== DOMAIN TYPES =====================


class ExamQuestion(SQLModel):
    question: str
    options: List[str]
    correct_answer: str  # must match one option exactly


class ExamAttempt(SQLModel):
    """One completed run of the exam flow."""

    questions: List[ExamQuestion]
    user_answers: Dict[int, str] = Field(default_factory=dict)  # question index -> option text
    score: int = 0
    date: Optional[datetime] = None  # set at submission, not at exam start

    @property
    def total(self) -> int:
        return len(self.questions)


class User(SQLModel):
    """Application user; identified by email."""

    email: str
    password: Optional[str] = None
    role: str = STUDENT_ROLE  # "admin", "student"
    # Set once, for the first user ever registered in a client's store
    is_primary_admin: bool = False

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: Optional[str] = None
    nationality: Optional[str] = None
    profile_picture: Optional[str] = None  # data URL

    exam_history: List[ExamAttempt] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def display_name(self) -> str:
        """First name, or the local part of the email."""
        return self.first_name or self.email.split("@")[0]


class StudyMaterial(SQLModel):
    name: str
    type: str  # MIME type
    data: str  # base64 payload

    @property
    def data_url(self) -> str:
        return f"data:{self.type};base64,{self.data}"


class Module(SQLModel):
    id: int
    title: str
    description: str
    icon_name: str = "BookOpenIcon"
    video_url: Optional[str] = None
    materials: List[StudyMaterial] = Field(default_factory=list)


class Announcement(SQLModel):
    id: str  # creation timestamp in milliseconds
    content: str
    date: datetime
