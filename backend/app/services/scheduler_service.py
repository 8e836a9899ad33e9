"""Background task scheduler for periodic jobs (alert sweeps)."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Lightweight asyncio-based task scheduler.

    Runs registered tasks at fixed intervals. State is in-memory only, so a
    restart simply schedules every task again. Synchronous tasks run in a
    worker thread so database work never blocks the event loop.
    """

    def __init__(self, tick_seconds: int = 60, first_run_delay_seconds: int = 10):
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._task_handle: Optional[asyncio.Task] = None
        self.tick_seconds = tick_seconds
        self.first_run_delay = timedelta(seconds=first_run_delay_seconds)

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> asyncio.Task:
        """Start the scheduler loop on the running event loop."""
        self._running = True
        self._task_handle = asyncio.create_task(self._loop())
        logger.info("Task scheduler started")
        return self._task_handle

    async def _loop(self):
        while self._running:
            await self.run_pending()
            await asyncio.sleep(self.tick_seconds)

    async def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        """Run every task that is due. Returns the names of tasks that ran."""
        now = now or datetime.now(timezone.utc)
        ran = []
        for name, task in list(self._tasks.items()):
            if now < task["next_run"]:
                continue
            try:
                if asyncio.iscoroutinefunction(task["func"]):
                    result = await task["func"]()
                else:
                    result = await asyncio.to_thread(task["func"])
                task["last_result"] = result
                task["last_error"] = None
                logger.debug(f"Scheduled task '{name}' completed")
            except Exception as e:
                task["last_error"] = str(e)
                logger.error(f"Scheduled task '{name}' failed: {e}")
            task["last_run"] = now
            task["run_count"] += 1
            task["next_run"] = now + task["interval"]
            ran.append(name)
        return ran

    def stop(self):
        self._running = False
        if self._task_handle:
            self._task_handle.cancel()
            self._task_handle = None
        logger.info("Task scheduler stopped")

    def add_task(self, name: str, func: Callable, interval_seconds: int):
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + self.first_run_delay,
            "last_run": None,
            "last_result": None,
            "run_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    def get_status(self) -> Dict[str, Any]:
        return {
            name: {
                "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                "next_run": t["next_run"].isoformat(),
                "interval_seconds": int(t["interval"].total_seconds()),
                "run_count": t["run_count"],
                "last_result": t["last_result"],
                "last_error": t["last_error"],
            }
            for name, t in self._tasks.items()
        }


scheduler = TaskScheduler()
