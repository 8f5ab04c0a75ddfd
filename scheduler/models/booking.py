"""Booking model definitions."""

import secrets
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from scheduler.database import Base

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"


def generate_booking_uid() -> str:
    return secrets.token_urlsafe(12)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """A public reservation of one event type. Cancelled rows are kept."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    uid = Column(String, unique=True, index=True, nullable=False, default=generate_booking_uid)
    event_type_id = Column(Integer, ForeignKey("event_types.id", ondelete="CASCADE"), nullable=False)
    booker_name = Column(String, nullable=False)
    booker_email = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=STATUS_CONFIRMED)
    notes = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    event_type = relationship("EventType", back_populates="bookings")
    answers = relationship(
        "Answer",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Answer.id",
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_bookings_time_order"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_bookings_status"),
    )


class Answer(Base):
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(String, nullable=False)

    booking = relationship("Booking", back_populates="answers")
    question = relationship("Question")
