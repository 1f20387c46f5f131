"""共享校验工具 -- 单元号列表、照片数量、仓库位置格式"""

from collections import Counter
from collections.abc import Iterable, Sequence

from .config import PENDING_LOCATION
from .exceptions import TaskValidationError

_LOCATION_MIN_LENGTH = 2
_LOCATION_MAX_LENGTH = 100


def find_duplicates(values: Iterable[str]) -> list[str]:
    """返回重复出现的值（保持首次出现顺序）"""
    counts = Counter(values)
    seen: list[str] = []
    for value, count in counts.items():
        if count > 1:
            seen.append(value)
    return seen


def normalize_unit_number(value: str) -> str:
    """单元号统一为去空白的大写形式"""
    return value.strip().upper()


def check_unit_number_duplicates(unit_numbers: Sequence[str], field: str = "unit_numbers") -> None:
    """单元号两两不同（忽略大小写与首尾空白）"""
    duplicates = find_duplicates(normalize_unit_number(n) for n in unit_numbers)
    if duplicates:
        raise TaskValidationError(
            f"Duplicate storage unit numbers: {', '.join(duplicates)}",
            details=[{"field": field, "reason": "duplicate", "values": duplicates}],
        )


def check_unit_numbers(unit_numbers: Sequence[str], field: str = "unit_numbers") -> None:
    """单元号列表：非空、无空白项、两两不同"""
    if not unit_numbers:
        raise TaskValidationError(
            "At least one storage unit number is required",
            details=[{"field": field, "reason": "empty"}],
        )
    if any(not number for number in unit_numbers):
        raise TaskValidationError(
            "Storage unit numbers must not be blank",
            details=[{"field": field, "reason": "blank"}],
        )
    check_unit_number_duplicates(unit_numbers, field)


def check_unit_count(unit_numbers: Sequence[str], required: int) -> None:
    """单元号数量必须等于需要分配的单元数"""
    if len(unit_numbers) != required:
        raise TaskValidationError(
            f"Expected {required} storage unit number(s), got {len(unit_numbers)}",
            details=[
                {
                    "field": "unit_numbers",
                    "reason": "count_mismatch",
                    "expected": required,
                    "actual": len(unit_numbers),
                }
            ],
        )


def check_photos(photos: Sequence[object], field: str, minimum: int = 1) -> None:
    """至少需要 minimum 张照片"""
    if len(photos) < minimum:
        raise TaskValidationError(
            f"At least {minimum} photo(s) required for {field}",
            details=[{"field": field, "reason": "missing_photos"}],
        )


def check_warehouse_location(value: str) -> str:
    """校验仓库位置：去首尾空白后 2..100 个字符，且不能是待录入占位值

    Returns:
        去空白后的位置（保留大小写）
    """
    location = value.strip()
    if not location:
        raise TaskValidationError(
            "Warehouse location cannot be empty",
            details=[{"field": "warehouse_location", "reason": "empty"}],
        )
    if not (_LOCATION_MIN_LENGTH <= len(location) <= _LOCATION_MAX_LENGTH):
        raise TaskValidationError(
            "Warehouse location must be between 2 and 100 characters",
            details=[{"field": "warehouse_location", "reason": "length"}],
        )
    if location == PENDING_LOCATION:
        raise TaskValidationError(
            f'Cannot set location to "{PENDING_LOCATION}"',
            details=[{"field": "warehouse_location", "reason": "placeholder"}],
        )
    return location


def diff_checked(required: Iterable[object], checked: Iterable[object]) -> tuple[list, list]:
    """比较服务端推导出的必勾集合与客户端提交的勾选集合

    Returns:
        (未勾选项, 未知项)，均按字符串排序
    """
    required_set = set(required)
    checked_set = set(checked)
    missing = sorted(required_set - checked_set, key=str)
    unknown = sorted(checked_set - required_set, key=str)
    return missing, unknown
