"""Availability model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, Time, UniqueConstraint, text
from sqlalchemy.orm import relationship

from scheduler.database import Base


class Availability(Base):
    """A named set of working hours in one timezone."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False, default="Custom Schedule")
    timezone = Column(String, nullable=False, default="UTC")
    is_default = Column(Boolean, nullable=False, default=False)

    schedules = relationship(
        "WeeklySchedule",
        back_populates="availability",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WeeklySchedule.day_of_week",
    )
    overrides = relationship(
        "DateOverride",
        back_populates="availability",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DateOverride.date",
    )

    __table_args__ = (
        Index(
            "uq_availability_single_default",
            "user_id",
            unique=True,
            sqlite_where=text("is_default = 1"),
            postgresql_where=text("is_default"),
        ),
    )


class WeeklySchedule(Base):
    """Recurring hours for one weekday (0=Sunday .. 6=Saturday)."""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    availability = relationship("Availability", back_populates="schedules")

    __table_args__ = (
        UniqueConstraint("availability_id", "day_of_week", name="uq_schedules_availability_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_schedules_day_of_week"),
    )


class DateOverride(Base):
    """Replaces the weekly hours on one calendar date, or blocks it."""
    __tablename__ = "overrides"

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    is_blocked = Column(Boolean, nullable=False, default=False)

    availability = relationship("Availability", back_populates="overrides")

    __table_args__ = (
        UniqueConstraint("availability_id", "date", name="uq_overrides_availability_date"),
    )
