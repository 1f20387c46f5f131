"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、照片目录、adapter 查询超时、列表缓存 TTL 以及
各任务类型资格判定使用的业务常量。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("OPSDESK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "OPSDESK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "opsdesk.db"),
    )


def get_photos_dir() -> Path:
    """获取本地照片存储目录"""
    return Path(
        os.environ.get(
            "OPSDESK_PHOTOS_DIR",
            str(_get_base_dir() / "photos"),
        )
    )


def _float_env(name: str, default: float) -> float:
    """读取浮点型环境变量，非法值回退默认值（不阻塞启动）"""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("invalid_float_config", env_var=name, value=raw, fallback=default)
        return default


def get_adapter_timeout_s() -> float:
    """单个 adapter ListPending 的超时（秒）"""
    return _float_env("OPSDESK_ADAPTER_TIMEOUT_S", 5.0)


def get_listing_cache_ttl_s() -> float:
    """任务列表读穿缓存 TTL（秒），0 表示禁用"""
    return _float_env("OPSDESK_LISTING_CACHE_TTL_S", 0.0)


# 入库时默认写入的仓库名称
DEFAULT_WAREHOUSE_NAME: str = os.environ.get(
    "OPSDESK_WAREHOUSE_NAME", "South San Francisco"
)

# 等待仓库位置录入的占位值
PENDING_LOCATION: str = "Pending Update"

# 评分 <= 此值视为差评
NEGATIVE_FEEDBACK_MAX_RATING: int = 3

# 预约状态：这些状态的预约不再产生任何任务
EXCLUDED_APPOINTMENT_STATUSES: tuple[str, ...] = ("Completed", "Cancelled", "Canceled")
CANCELLED_APPOINTMENT_STATUSES: tuple[str, ...] = ("Cancelled", "Canceled")
AWAITING_CHECK_IN_STATUS: str = "Awaiting Admin Check In"
COMPLETED_STATUS: str = "Completed"

# 时间窗口（天）
UPCOMING_WINDOW_DAYS: int = 2
