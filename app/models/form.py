import uuid

from sqlalchemy import Boolean, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin

QUESTION_TYPE_TEXT = "text"
QUESTION_TYPE_MULTIPLE_CHOICE = "multiple-choice"
QUESTION_TYPES = (QUESTION_TYPE_TEXT, QUESTION_TYPE_MULTIPLE_CHOICE)

class Form(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "forms"
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Ordered list of {id, type, question, options, required}.
    questions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    owner_user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
