"""
InsightService: runs every registered insight generator and ranks the results.

Pure read path: no mutations, no gamification side effects.

Fan-out / fan-in:
  - each generator runs on a worker thread with its own Session (sessions are
    not shared between threads)
  - the service waits for every generator to settle; a generator that raises
    is logged and contributes nothing
  - present results are sorted by priority (stable, so registration order
    breaks ties) and truncated to `limit` unless `include_all`
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from kudipal.config import get_settings, today_local
from kudipal.domain.insight import Insight
from kudipal.infrastructure.store import TransactionStore
from kudipal.application.insight_generators import INSIGHT_GENERATORS, InsightGenerator

logger = logging.getLogger(__name__)


class InsightService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        generators: Sequence[InsightGenerator] | None = None,
        max_workers: int | None = None,
    ):
        self.session_factory = session_factory
        self.generators = list(INSIGHT_GENERATORS if generators is None else generators)
        self.max_workers = max_workers or get_settings().INSIGHTS_MAX_WORKERS

    def generate_insights(
        self,
        user_id: int,
        limit: int | None = None,
        include_all: bool = False,
        today: date | None = None,
    ) -> list[Insight]:
        """
        Return the user's insights, most urgent first.

        Args:
            user_id: owner of the transaction history
            limit: maximum number of insights (default INSIGHTS_DEFAULT_LIMIT)
            include_all: ignore `limit` and return every present insight
            today: reference date (default: today in the configured timezone)
        """
        if limit is None:
            limit = get_settings().INSIGHTS_DEFAULT_LIMIT
        if limit < 0:
            raise ValueError("limit must be non-negative")
        today = today or today_local()

        insights = self._settle_all(user_id, today)
        insights.sort(key=lambda i: i.priority)

        if not include_all:
            insights = insights[:limit]
        return insights

    def _settle_all(self, user_id: int, today: date) -> list[Insight]:
        if not self.generators:
            return []

        workers = min(self.max_workers, len(self.generators))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="insight") as pool:
            futures = [
                (gen, pool.submit(self._run_one, gen, user_id, today))
                for gen in self.generators
            ]

            results: list[Insight] = []
            for gen, future in futures:
                try:
                    insight = future.result()
                except Exception:
                    logger.exception("Insight generator %s failed for user_id=%s", gen.name, user_id)
                    continue
                if insight is not None:
                    results.append(insight)
        return results

    def _run_one(self, generator: InsightGenerator, user_id: int, today: date) -> Optional[Insight]:
        db = self.session_factory()
        try:
            return generator(TransactionStore(db), user_id, today)
        finally:
            db.close()
