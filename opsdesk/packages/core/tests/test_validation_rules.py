"""共享校验工具单元测试"""

import pytest
from opsdesk.core.exceptions import TaskValidationError
from opsdesk.core.validation import (
    check_photos,
    check_unit_count,
    check_unit_numbers,
    check_warehouse_location,
    diff_checked,
    find_duplicates,
)


class TestUnitNumbers:
    """单元号列表校验"""

    def test_accepts_distinct_numbers(self):
        check_unit_numbers(["BX-001", "BX-002"])

    def test_empty_list_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_numbers([])
        assert exc_info.value.details[0]["reason"] == "empty"

    def test_blank_entry_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_numbers(["BX-001", ""])
        assert exc_info.value.details[0]["reason"] == "blank"

    def test_duplicates_reported_with_values(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_numbers(["BX-001", "BX-002", "BX-001"])
        detail = exc_info.value.details[0]
        assert detail == {"field": "unit_numbers", "reason": "duplicate", "values": ["BX-001"]}
        assert exc_info.value.recoverable is False

    def test_custom_field_name(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_numbers(["A", "A"], field="checked_unit_numbers")
        assert exc_info.value.details[0]["field"] == "checked_unit_numbers"

    def test_duplicates_ignore_case_and_padding(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_numbers(["a-1", " A-1"])
        assert exc_info.value.details[0]["values"] == ["A-1"]

    def test_find_duplicates_keeps_first_seen_order(self):
        assert find_duplicates(["b", "a", "b", "a", "c"]) == ["b", "a"]


class TestUnitCountAndPhotos:
    def test_count_mismatch(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_unit_count(["A"], 2)
        detail = exc_info.value.details[0]
        assert detail["reason"] == "count_mismatch"
        assert detail["expected"] == 2
        assert detail["actual"] == 1

    def test_count_match(self):
        check_unit_count(["A", "B"], 2)

    def test_missing_photos(self):
        with pytest.raises(TaskValidationError) as exc_info:
            check_photos([], "trailer_photos")
        assert exc_info.value.details == [{"field": "trailer_photos", "reason": "missing_photos"}]

    def test_enough_photos(self):
        check_photos(["https://img/1.jpg"], "photos")


class TestWarehouseLocation:
    """仓库位置格式"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("B12-04", "B12-04"),
            (" b12-04 ", "b12-04"),
            ("Aisle 5 Shelf 3", "Aisle 5 Shelf 3"),
            ("Row 12", "Row 12"),
            ("Bay-7", "Bay-7"),
            ("pending update", "pending update"),
            ("x" * 100, "x" * 100),
        ],
    )
    def test_accepts_free_form_location(self, raw: str, expected: str):
        assert check_warehouse_location(raw) == expected

    @pytest.mark.parametrize(
        "raw,reason",
        [
            ("", "empty"),
            ("   ", "empty"),
            ("Pending Update", "placeholder"),
            (" Pending Update ", "placeholder"),
            ("B", "length"),
            ("x" * 101, "length"),
        ],
    )
    def test_rejects_invalid_location(self, raw: str, reason: str):
        with pytest.raises(TaskValidationError) as exc_info:
            check_warehouse_location(raw)
        assert exc_info.value.details[0]["reason"] == reason


class TestDiffChecked:
    def test_exact_match(self):
        assert diff_checked(["A", "B"], ["B", "A"]) == ([], [])

    def test_missing_and_unknown(self):
        missing, unknown = diff_checked([1, 2, 3], [3, 4])
        assert missing == [1, 2]
        assert unknown == [4]
