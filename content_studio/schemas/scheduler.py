"""Scheduler status response."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SchedulerStatusResponse(BaseModel):
    """GET /api/scheduler/status: the caller's session scheduler."""

    enabled: bool
    running: bool
    interval_seconds: float
    last_tick_at: Optional[datetime] = None
    scheduled_count: int = 0
    next_due_at: Optional[datetime] = None
