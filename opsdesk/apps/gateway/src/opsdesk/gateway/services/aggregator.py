"""TaskAggregator -- 并发查询全部 adapter，合并为分组排序后的任务列表

单个 adapter 失败或超时不影响其余结果，以 PartialAggregationFailure
附在列表中返回。统计由同一次列表结果计算。
"""

import asyncio
import time

import structlog
from opsdesk.core.models import (
    TASK_TYPE_ORDER,
    PartialAggregationFailure,
    Task,
    TaskFilter,
    TaskListing,
    TaskStatistics,
    TaskType,
)

from .adapters import Clock, TaskAdapter, utc_now

log = structlog.get_logger()


def sort_tasks(tasks: list[Task]) -> list[Task]:
    """按类型分组；组内 created_at 倒序，再按 id 保证确定性"""
    ordered = sorted(tasks, key=lambda t: str(t.id))
    ordered.sort(key=lambda t: t.created_at, reverse=True)
    ordered.sort(key=lambda t: TASK_TYPE_ORDER[t.type])
    return ordered


class TaskAggregator:
    """任务列表聚合器"""

    def __init__(
        self,
        adapters: dict[TaskType, TaskAdapter],
        timeout_s: float = 5.0,
        cache_ttl_s: float = 0.0,
        clock: Clock = utc_now,
    ) -> None:
        self._adapters = adapters
        self._timeout_s = timeout_s
        self._cache_ttl_s = cache_ttl_s
        self._clock = clock
        self._cached: TaskListing | None = None
        self._cached_at: float = 0.0

    def invalidate(self) -> None:
        """丢弃缓存的列表（任务处理持久化后调用）"""
        self._cached = None

    async def list_all_pending(
        self,
        task_filter: TaskFilter | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TaskListing:
        """列出所有待处理任务

        Args:
            task_filter: 仅包含指定类型
            cancel_event: 置位后停止等待，未完成的 adapter 记为 cancelled
        """
        use_cache = self._cache_ttl_s > 0 and (task_filter is None or task_filter.types is None)
        if use_cache and self._cached is not None:
            if time.monotonic() - self._cached_at < self._cache_ttl_s:
                return self._cached

        selected = [
            adapter
            for task_type, adapter in self._adapters.items()
            if task_filter is None or task_filter.includes(task_type)
        ]
        pending = {
            asyncio.create_task(self._run_adapter(adapter, task_filter)): adapter
            for adapter in selected
        }

        tasks: list[Task] = []
        errors: list[PartialAggregationFailure] = []
        try:
            done = await self._wait(set(pending), cancel_event)
        except asyncio.CancelledError:
            for child in pending:
                child.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

        for child, adapter in pending.items():
            if child not in done:
                child.cancel()
                errors.append(
                    PartialAggregationFailure(
                        type=adapter.task_type,
                        kind="cancelled",
                        message="Listing was cancelled before this source finished",
                    )
                )
                continue
            result = child.result()
            if isinstance(result, PartialAggregationFailure):
                errors.append(result)
            else:
                tasks.extend(result)

        not_done = [child for child in pending if child not in done]
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
            log.info("task_listing_cancelled", cancelled=len(not_done))

        errors.sort(key=lambda e: TASK_TYPE_ORDER[e.type])
        listing = TaskListing(
            tasks=sort_tasks(tasks),
            errors=errors,
            generated_at=self._clock(),
        )
        if errors:
            log.warning(
                "task_listing_partial",
                failed_types=[e.type.value for e in errors],
                total=len(listing.tasks),
            )
        elif use_cache:
            self._cached = listing
            self._cached_at = time.monotonic()
        return listing

    async def get_statistics(
        self,
        task_filter: TaskFilter | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TaskStatistics:
        """由同一次列表结果计算统计"""
        listing = await self.list_all_pending(task_filter, cancel_event)
        return self.statistics_of(listing)

    @staticmethod
    def statistics_of(listing: TaskListing) -> TaskStatistics:
        counts = listing.counts_by_type()
        return TaskStatistics(
            total=len(listing.tasks),
            by_type=counts,
            critical=counts[TaskType.UNASSIGNED_DRIVER],
            urgent=counts[TaskType.NEGATIVE_FEEDBACK],
            errors=listing.errors,
            generated_at=listing.generated_at,
        )

    async def _wait(
        self,
        children: set[asyncio.Task],
        cancel_event: asyncio.Event | None,
    ) -> set[asyncio.Task]:
        if not children:
            return set()
        if cancel_event is None:
            done, _ = await asyncio.wait(children)
            return done

        watcher = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(children | {watcher}, return_when=asyncio.FIRST_COMPLETED)
            while watcher not in done and not children <= done:
                more, _ = await asyncio.wait(
                    (children - done) | {watcher}, return_when=asyncio.FIRST_COMPLETED
                )
                done |= more
        finally:
            watcher.cancel()
        return done - {watcher}

    async def _run_adapter(
        self,
        adapter: TaskAdapter,
        task_filter: TaskFilter | None,
    ) -> list[Task] | PartialAggregationFailure:
        """执行单个 adapter；失败与超时转换为 PartialAggregationFailure"""
        started = time.monotonic()
        try:
            tasks = await asyncio.wait_for(adapter.list_pending(task_filter), self._timeout_s)
        except TimeoutError:
            log.warning(
                "adapter_list_timeout",
                adapter=adapter.name,
                task_type=adapter.task_type.value,
                timeout_s=self._timeout_s,
            )
            return PartialAggregationFailure(
                type=adapter.task_type,
                kind="timeout",
                message=f"Timed out after {self._timeout_s}s",
            )
        except Exception as e:
            log.error(
                "adapter_list_failed",
                adapter=adapter.name,
                task_type=adapter.task_type.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            return PartialAggregationFailure(
                type=adapter.task_type,
                kind="error",
                message=f"{type(e).__name__}: {e}",
            )
        log.debug(
            "adapter_list_completed",
            adapter=adapter.name,
            count=len(tasks),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return tasks
