import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from config import ROTATION_MAX_SAVED
from rotation.models import SavedSchedule, Schedule, ScheduleConfig, generate_id

logger = logging.getLogger(__name__)


class ScheduleStore:
    """Saved schedules kept in memory, newest first, capped at `max_saved`."""

    def __init__(self, max_saved: int = ROTATION_MAX_SAVED):
        self.max_saved = max_saved
        self._schedules: Dict[str, SavedSchedule] = {}

    def save(self, config: ScheduleConfig, schedule: Schedule, name: Optional[str] = None) -> SavedSchedule:
        now = datetime.now(timezone.utc)
        saved = SavedSchedule(
            id=generate_id(),
            name=name or f"Schedule {now:%Y-%m-%d %H:%M:%S}",
            config=config,
            schedule=schedule,
            created_at=now.isoformat(),
        )
        self._schedules[saved.id] = saved
        for old in self.list()[self.max_saved:]:
            logger.info("Dropping saved schedule %s over the limit of %d", old.id, self.max_saved)
            del self._schedules[old.id]
        return saved

    def list(self) -> List[SavedSchedule]:
        # insertion order is creation order
        return list(reversed(self._schedules.values()))

    def get(self, sid: str) -> Optional[SavedSchedule]:
        return self._schedules.get(sid)

    def update(self, sid: str, schedule: Schedule) -> SavedSchedule:
        saved = self._schedules[sid]
        saved.schedule = schedule
        return saved

    def delete(self, sid: str) -> bool:
        return self._schedules.pop(sid, None) is not None

    def clear(self):
        self._schedules.clear()


schedule_store = ScheduleStore()


def get_store() -> ScheduleStore:
    return schedule_store
