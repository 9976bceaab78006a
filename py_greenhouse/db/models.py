"""Database models for the expansion job store."""

import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ExpansionJob(Base):
    """Track expansion optimizer jobs submitted for background processing."""

    __tablename__ = "expansion_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_type = Column(String(50), nullable=False, default="greenhouse_expansion")

    status = Column(String(20), default="queued")  # queued, running, completed, failed, cancelled
    progress_percent = Column(Integer, default=0)
    error_message = Column(Text)

    # Request parameters
    metric = Column(String(50))
    request_json = Column(Text, nullable=False)

    # Serialized ExpansionResponse once completed
    result_json = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    @property
    def request(self) -> dict:
        return json.loads(self.request_json)

    @property
    def result(self):
        return json.loads(self.result_json) if self.result_json else None

    @property
    def is_finished(self) -> bool:
        return self.status in ("completed", "failed", "cancelled")
