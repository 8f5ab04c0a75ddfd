"""Event type and booking question model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from scheduler.database import Base

DEFAULT_COLOR = "#7C3AED"
DEFAULT_DURATION_MINUTES = 30


class EventType(Base):
    """A bookable meeting kind, e.g. "30 min intro call"."""
    __tablename__ = "event_types"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    duration = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)
    slug = Column(String, nullable=False)
    color = Column(String, nullable=False, default=DEFAULT_COLOR)
    is_active = Column(Boolean, nullable=False, default=True)
    buffer_before = Column(Integer, nullable=False, default=0)
    buffer_after = Column(Integer, nullable=False, default=0)

    host = relationship("User")
    questions = relationship(
        "Question",
        back_populates="event_type",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Question.id",
    )
    bookings = relationship(
        "Booking",
        back_populates="event_type",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uq_event_types_user_slug"),
        CheckConstraint("duration > 0", name="check_event_types_duration_positive"),
        CheckConstraint("buffer_before >= 0 AND buffer_after >= 0", name="check_event_types_buffers"),
    )


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    event_type_id = Column(Integer, ForeignKey("event_types.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(String, nullable=False)
    required = Column(Boolean, nullable=False, default=False)
    question_type = Column(String, nullable=False, default="text")

    event_type = relationship("EventType", back_populates="questions")
