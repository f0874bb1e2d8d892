"""Database models for the remote record store."""
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from thrive45.models.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class Challenge(Base, TimestampMixin):
    """Challenge model."""

    __tablename__ = "challenges"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    current_day = Column(Integer, nullable=True, default=1)
    status = Column(String, nullable=False, default="active")  # active, failed

    # Relationships
    daily_tasks = relationship("DailyTask", back_populates="challenge")


class DailyTask(Base, TimestampMixin):
    """One day of task results for a challenge."""

    __tablename__ = "daily_tasks"
    __table_args__ = (UniqueConstraint("challenge_id", "date", name="uq_daily_tasks_challenge_date"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    challenge_id = Column(String(36), ForeignKey("challenges.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    day_number = Column(Integer, nullable=True)
    mindfulness_completed = Column(Boolean, nullable=True)
    mindfulness_value = Column(Float, nullable=True)  # seconds
    reading_completed = Column(Boolean, nullable=True)
    reading_notes = Column(String, nullable=True)
    water_consumed = Column(Boolean, nullable=True)
    water_glasses = Column(Float, nullable=True)
    diet_followed = Column(Boolean, nullable=True)
    workout_completed = Column(Boolean, nullable=True)
    digital_detox = Column(Boolean, nullable=True)

    # Relationships
    challenge = relationship("Challenge", back_populates="daily_tasks")
