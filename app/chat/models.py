"""Chat models for therapy sessions and their messages."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampedModel

SESSION_TYPE_COUPLES = "couples"
SESSION_TYPE_PRIVATE = "private"


class TherapySession(TimestampedModel):
    """One ongoing chat thread, either private (one user) or couples (two users)."""

    __tablename__ = "therapy_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    creator_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=False, index=True
    )
    partner_id: Mapped[str | None] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=True, index=True
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # couples, private

    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def recipient_ids(self) -> list[str]:
        """User ids entitled to receive broadcasts for this session."""
        recipients = [self.creator_id]
        if self.type == SESSION_TYPE_COUPLES and self.partner_id:
            recipients.append(self.partner_id)
        return recipients

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.recipient_ids()


class Message(Base):
    """Individual chat turn. Assistant rows are created empty and filled while streaming."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("therapy_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[str | None] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=True
    )  # NULL for assistant messages
    is_ai: Mapped[bool] = mapped_column(Boolean, default=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
