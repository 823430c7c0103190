"""
Table definitions for the episode and feedback stores.
"""
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    String,
    Text,
)

from store.engine import Base


def _new_id() -> str:
    return str(uuid4())


class EpisodeRow(Base):
    __tablename__ = "episodes"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True))
    severity = Column(Integer, nullable=False)
    pain_location = Column(JSON, nullable=False, default=list)
    symptoms = Column(JSON, nullable=False, default=list)
    triggers = Column(JSON, nullable=False, default=list)
    medications = Column(JSON, nullable=False, default=list)  # list of JSON strings
    notes = Column(Text)
    contributing_factors = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class FeedbackRow(Base):
    __tablename__ = "feedback"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="new")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


TABLES = {
    EpisodeRow.__tablename__: EpisodeRow,
    FeedbackRow.__tablename__: FeedbackRow,
}
