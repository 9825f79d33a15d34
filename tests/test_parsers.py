"""
单元测试：工具输出解析

测试覆盖：
- 百分比截断、负载截断
- 温度汇总、容器名合并
- 各工具输出的正常与异常格式
"""

import pytest

from health_agent.models import DriveTemperature, LoadAverage
from health_agent.parsers import (
    ParseError,
    aggregate_temperatures,
    all_passed,
    load_average,
    merge_container_names,
    parse_container_names,
    parse_free,
    parse_lsblk,
    parse_os_release,
    parse_smart_health,
    parse_smart_temperature,
    parse_zfs_list,
    parse_zpool_status,
    truncate_2dp,
    truncate_percent,
)

from conftest import FREE, LSBLK, OS_RELEASE, SMART_FAILED, SMART_PASSED, ZFS_LIST, smart_attributes


class TestTruncatePercent:
    """百分比截断"""

    def test_half(self):
        assert truncate_percent(50, 50) == 50

    def test_truncates_instead_of_rounding(self):
        """测试：1/3 -> 33，而不是 33.33 或 34"""
        assert truncate_percent(1, 2) == 33
        assert truncate_percent(2, 1) == 66

    def test_deterministic(self):
        assert truncate_percent(1, 2) == truncate_percent(1, 2)

    def test_large_byte_counts(self):
        assert truncate_percent(999_999_999_999, 1) == 99

    def test_full_and_empty(self):
        assert truncate_percent(10, 0) == 100
        assert truncate_percent(0, 10) == 0

    def test_zero_total(self):
        with pytest.raises(ParseError):
            truncate_percent(0, 0)

    def test_negative(self):
        with pytest.raises(ParseError):
            truncate_percent(-1, 5)


class TestLoadAverage:
    def test_truncate_2dp(self):
        assert truncate_2dp(1.236) == 1.23
        assert truncate_2dp(0.29) == 0.29
        assert truncate_2dp(2.0) == 2.0
        assert truncate_2dp(0.999) == 0.99

    def test_load_average(self):
        assert load_average((0.29, 1.236, 2.0)) == LoadAverage(load1=0.29, load5=1.23, load15=2.0)

    def test_wrong_length(self):
        with pytest.raises(ParseError):
            load_average((1.0, 2.0))


class TestAggregates:
    def test_temperatures(self):
        assert aggregate_temperatures([30, 40, 50]) == DriveTemperature(max=50, avg=40)

    def test_temperature_mean_truncated(self):
        """测试：平均值截断为整数"""
        assert aggregate_temperatures([30, 31]) == DriveTemperature(max=31, avg=30)

    def test_no_temperatures(self):
        with pytest.raises(ParseError):
            aggregate_temperatures([])

    def test_all_passed(self):
        assert all_passed([True, True, True]) is True
        assert all_passed([True, True, False]) is False

    def test_merge_container_names(self):
        """测试：去重并排序"""
        assert merge_container_names(["a", "b"], ["b", "c"]) == ["a", "b", "c"]
        assert merge_container_names(["zeta", "alpha"], []) == ["alpha", "zeta"]
        assert merge_container_names([], []) == []


class TestToolOutput:
    def test_lsblk(self):
        assert parse_lsblk(LSBLK) == ["/dev/sda", "/dev/sdb", "/dev/sdc"]

    def test_lsblk_keeps_order(self):
        raw = '{"blockdevices": [{"name": "nvme0n1"}, {"name": "sda"}]}'
        assert parse_lsblk(raw) == ["/dev/nvme0n1", "/dev/sda"]

    @pytest.mark.parametrize("raw", ["", "not json", '{"devices": []}', '{"blockdevices": [{"size": 1}]}'])
    def test_lsblk_malformed(self, raw):
        with pytest.raises(ParseError):
            parse_lsblk(raw)

    def test_os_release(self):
        assert parse_os_release(OS_RELEASE) == "Debian GNU/Linux 12 (bookworm)"

    def test_os_release_unquoted(self):
        assert parse_os_release("PRETTY_NAME=Alpine\n") == "Alpine"

    def test_os_release_missing(self):
        with pytest.raises(ParseError):
            parse_os_release('NAME="Debian"\n')

    def test_free(self):
        assert parse_free(FREE) == 25

    def test_free_malformed(self):
        with pytest.raises(ParseError):
            parse_free("total used\n")
        with pytest.raises(ParseError):
            parse_free("header\nMem: abc def")

    def test_zpool_status(self):
        assert parse_zpool_status("all pools are healthy") is True
        assert parse_zpool_status("  pool: tank\n state: DEGRADED") is False
        assert parse_zpool_status("no pools available") is False

    def test_zfs_list_uses_first_dataset(self):
        assert parse_zfs_list(ZFS_LIST) == 30

    def test_zfs_list_malformed(self):
        with pytest.raises(ParseError):
            parse_zfs_list("")
        with pytest.raises(ParseError):
            parse_zfs_list("tank 300 700")

    def test_smart_temperature(self):
        assert parse_smart_temperature(smart_attributes(41)) == 41

    def test_smart_temperature_with_min_max_note(self):
        raw = "194 Temperature_Celsius 0x0022 114 091 000 Old_age Always - 33 (Min/Max 18/45)"
        assert parse_smart_temperature(raw) == 33

    def test_smart_temperature_missing(self):
        """测试：没有属性 194（如 NVMe）返回 None"""
        assert parse_smart_temperature("190 Airflow_Temperature_Cel 0x0022 065 052 045 Old_age Always - 35") is None

    def test_smart_temperature_unreadable(self):
        with pytest.raises(ParseError):
            parse_smart_temperature("194 Temperature_Celsius 0x0022 070 055 000 Old_age Always - n/a")

    def test_smart_health(self):
        assert parse_smart_health(SMART_PASSED) is True
        assert parse_smart_health(SMART_FAILED) is False

    def test_container_names(self):
        assert parse_container_names("a\n\nb\n") == ["a", "b"]
        assert parse_container_names("") == []
