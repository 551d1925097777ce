"""Scheduler status API."""
from fastapi import APIRouter, Depends

from content_studio.dependencies import get_controller, get_schedulers
from content_studio.schemas.content import ContentStatus
from content_studio.schemas.scheduler import SchedulerStatusResponse
from content_studio.services.lifecycle_controller import LifecycleController
from content_studio.services.scheduler_service import SessionSchedulers

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    controller: LifecycleController = Depends(get_controller),
    schedulers: SessionSchedulers = Depends(get_schedulers),
) -> SchedulerStatusResponse:
    """The caller's scheduler: enabled, running, interval, last tick, scheduled items and the next due time."""
    scheduler = schedulers.get(controller.user_id)
    items = await controller.list()
    schedules = [i.schedule for i in items if i.status == ContentStatus.SCHEDULED and i.schedule is not None]
    return SchedulerStatusResponse(
        enabled=schedulers.enabled,
        running=scheduler is not None and scheduler.running,
        interval_seconds=scheduler.interval_seconds if scheduler else float(schedulers.interval_seconds),
        last_tick_at=scheduler.last_tick_at if scheduler else None,
        scheduled_count=len(schedules),
        next_due_at=min(schedules) if schedules else None,
    )
