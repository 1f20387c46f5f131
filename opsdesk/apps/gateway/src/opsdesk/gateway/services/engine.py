"""任务引擎组装 -- adapter 注册表 + 聚合器 + 分发器

HTTP lifespan、CLI 与测试共用同一组装入口。
"""

from opsdesk.core.config import (
    DEFAULT_WAREHOUSE_NAME,
    get_adapter_timeout_s,
    get_listing_cache_ttl_s,
)
from opsdesk.core.models import TaskType
from opsdesk.core.store import StoreGroup
from opsdesk.ports import Notifier, ObjectStorage

from .adapters import AdapterDeps, Clock, TaskAdapter, build_adapters, utc_now
from .aggregator import TaskAggregator
from .dispatcher import ResolutionDispatcher


class TaskEngine:
    """引擎组件集合"""

    def __init__(
        self,
        adapters: dict[TaskType, TaskAdapter],
        aggregator: TaskAggregator,
        dispatcher: ResolutionDispatcher,
    ) -> None:
        self.adapters = adapters
        self.aggregator = aggregator
        self.dispatcher = dispatcher


def build_engine(
    stores: StoreGroup,
    storage: ObjectStorage,
    notifier: Notifier,
    clock: Clock = utc_now,
    timeout_s: float | None = None,
    cache_ttl_s: float | None = None,
    warehouse_name: str = DEFAULT_WAREHOUSE_NAME,
    sender_email: str | None = None,
) -> TaskEngine:
    """组装任务引擎；timeout_s / cache_ttl_s 缺省时读取环境配置"""
    deps = AdapterDeps(
        stores=stores,
        storage=storage,
        notifier=notifier,
        clock=clock,
        sender_email=sender_email,
    )
    adapters = build_adapters(deps, warehouse_name=warehouse_name)
    aggregator = TaskAggregator(
        adapters,
        timeout_s=get_adapter_timeout_s() if timeout_s is None else timeout_s,
        cache_ttl_s=get_listing_cache_ttl_s() if cache_ttl_s is None else cache_ttl_s,
        clock=clock,
    )
    dispatcher = ResolutionDispatcher(adapters, aggregator)
    return TaskEngine(adapters, aggregator, dispatcher)
