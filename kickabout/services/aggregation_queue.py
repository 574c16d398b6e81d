"""
Aggregate recompute queue.

Schedules profile aggregate recomputes as asyncio tasks with these rules:
- At most one recompute runs per user at a time, so two runs never race on
  the same profile write
- Requests that arrive while a user's recompute is running collapse into a
  single follow-up run, which sees every rating committed before it starts
- Failures are logged and counted, never raised into the request that
  submitted the rating

Recomputes are eventually consistent: a rating is reflected once the
follow-up run for its user finishes. Call wait_idle() to wait for that.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from kickabout.database import db
from kickabout.services import aggregation_service

logger = logging.getLogger(__name__)


class AggregationQueue:
    """In-process queue of per-user aggregate recomputes."""

    def __init__(
        self,
        recompute_callback: Optional[Callable[[AsyncSession, int], Awaitable]] = None,
    ):
        self._recompute_callback = recompute_callback or aggregation_service.recompute_aggregate
        self._tasks: Dict[int, asyncio.Task] = {}
        self._rerun: Set[int] = set()
        self._accepting = True
        self.completed_runs = 0
        self.failed_runs = 0

    def enqueue(self, user_id: int) -> None:
        """
        Request a recompute of user_id's aggregate.

        Must be called from inside a running event loop. Returns immediately.
        """
        if not self._accepting:
            logger.warning(f"Aggregation queue stopped; dropping recompute for user {user_id}")
            return

        task = self._tasks.get(user_id)
        if task is not None and not task.done():
            self._rerun.add(user_id)
            return

        loop = asyncio.get_running_loop()
        self._tasks[user_id] = loop.create_task(
            self._run(user_id), name=f"aggregate-recompute-{user_id}"
        )

    async def _run(self, user_id: int) -> None:
        try:
            while True:
                self._rerun.discard(user_id)
                await self._recompute_once(user_id)
                if user_id not in self._rerun:
                    break
        finally:
            if self._tasks.get(user_id) is asyncio.current_task():
                del self._tasks[user_id]

    async def _recompute_once(self, user_id: int) -> None:
        try:
            async with db.AsyncSessionLocal() as session:
                await self._recompute_callback(session, user_id)
                await session.commit()
            self.completed_runs += 1
        except Exception as e:
            self.failed_runs += 1
            logger.error(f"Aggregate recompute failed for user {user_id}: {e}", exc_info=True)

    async def wait_idle(self, user_id: Optional[int] = None) -> None:
        """Wait until no recompute (for user_id, or for anyone) is scheduled or running."""
        while True:
            tasks = [
                task
                for uid, task in list(self._tasks.items())
                if user_id is None or uid == user_id
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_queue_status(self) -> Dict:
        """Get current queue status."""
        return {
            "accepting": self._accepting,
            "running": sorted(uid for uid, task in self._tasks.items() if not task.done()),
            "rerun_pending": sorted(self._rerun),
            "completed_runs": self.completed_runs,
            "failed_runs": self.failed_runs,
        }

    def start(self) -> None:
        """Start accepting recompute requests."""
        self._accepting = True

    async def stop(self) -> None:
        """Stop accepting requests and let in-flight recomputes finish."""
        self._accepting = False
        await self.wait_idle()


# Global queue instance
_aggregation_queue = AggregationQueue()


def get_aggregation_queue() -> AggregationQueue:
    """Get the global aggregation queue instance."""
    return _aggregation_queue
