"""
外部工具输出解析

全部为纯函数：输入原始文本，返回解析结果，格式不符时抛出 ParseError。
"""

import json
import re
from decimal import Decimal, ROUND_DOWN
from typing import Iterable, List, Optional, Sequence

from health_agent.models import DriveTemperature, LoadAverage


ZPOOL_HEALTHY = "all pools are healthy"
SMART_PASSED = "SMART overall-health self-assessment test result: PASSED"
TEMPERATURE_ATTRIBUTE = "194"

_LEADING_INT = re.compile(r"^-?\d+")
_TRAILING_NOTE = re.compile(r"\s*\(.*\)\s*$")


class ParseError(ValueError):
    """工具输出与预期格式不符"""


# =============================================================================
# 数值处理
# =============================================================================

def truncate_percent(used: int, avail: int) -> int:
    """
    计算使用率百分比，向零截断

    truncate_percent(1, 2) == 33
    """
    if used < 0 or avail < 0:
        raise ParseError(f"negative usage figures: used={used} avail={avail}")
    total = used + avail
    if total == 0:
        raise ParseError("usage figures sum to zero")
    return 100 * used // total


def truncate_2dp(value: float) -> float:
    """截断到两位小数（不四舍五入）"""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_DOWN))


def load_average(loads: Sequence[float]) -> LoadAverage:
    if len(loads) != 3:
        raise ParseError(f"expected 3 load averages, got {len(loads)}")
    return LoadAverage(
        load1=truncate_2dp(loads[0]),
        load5=truncate_2dp(loads[1]),
        load15=truncate_2dp(loads[2])
    )


def aggregate_temperatures(readings: Sequence[int]) -> DriveTemperature:
    """多块磁盘温度汇总为最大值和截断后的平均值"""
    if not readings:
        raise ParseError("no drive produced a temperature reading")
    return DriveTemperature(
        max=max(readings),
        avg=int(sum(readings) / len(readings))
    )


def all_passed(results: Iterable[bool]) -> bool:
    return all(results)


def merge_container_names(*lists: Iterable[str]) -> List[str]:
    """合并多个容器名列表：去重并按字典序排序"""
    return sorted({name for names in lists for name in names if name})


# =============================================================================
# 工具输出
# =============================================================================

def parse_lsblk(raw: str) -> List[str]:
    """
    解析 `lsblk -J` 输出

    Returns:
        设备路径列表，如 ["/dev/sda", "/dev/nvme0n1"]
    """
    try:
        data = json.loads(raw)
        devices = data["blockdevices"]
        return ["/dev/" + device["name"] for device in devices]
    except (ValueError, KeyError, TypeError) as e:
        raise ParseError(f"unexpected lsblk output: {e}") from e


def parse_os_release(raw: str) -> str:
    """从 /etc/os-release 中取出 PRETTY_NAME"""
    for line in raw.splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and key == "PRETTY_NAME":
            value = value.strip().strip("\"'")
            if value:
                return value
    raise ParseError("PRETTY_NAME not found in os-release")


def parse_free(raw: str) -> int:
    """
    解析 `free` 输出，返回内存使用率

    第二行格式: Mem: total used free shared buff/cache available
    """
    lines = raw.splitlines()
    if len(lines) < 2 or ":" not in lines[1]:
        raise ParseError("unexpected free output")
    try:
        numbers = [int(x) for x in lines[1].split(":", 1)[1].split()]
        total, used = numbers[0], numbers[1]
    except (ValueError, IndexError) as e:
        raise ParseError(f"unexpected free output: {e}") from e
    return truncate_percent(used, total - used)


def parse_zpool_status(raw: str) -> bool:
    return raw.strip() == ZPOOL_HEALTHY


def parse_zfs_list(raw: str) -> int:
    """
    解析 `zfs list -Hp` 第一行，返回存储池使用率

    字段以 tab 分隔: name used avail refer mountpoint
    """
    lines = raw.splitlines()
    if not lines:
        raise ParseError("zfs list produced no datasets")
    fields = lines[0].split("\t")
    try:
        used_bytes = int(fields[1])
        avail_bytes = int(fields[2])
    except (ValueError, IndexError) as e:
        raise ParseError(f"unexpected zfs list output: {e}") from e
    return truncate_percent(used_bytes, avail_bytes)


def parse_smart_temperature(raw: str) -> Optional[int]:
    """
    从 `smartctl -A` 输出中取出属性 194 的原始值

    没有该属性时返回 None；属性行存在但读数无法解析时抛出 ParseError。
    """
    for line in raw.splitlines():
        fields = line.split()
        if not fields or fields[0] != TEMPERATURE_ATTRIBUTE:
            continue
        # "34 (Min/Max 20/45)" 之类的附注不计入读数
        fields = _TRAILING_NOTE.sub("", line).split()
        match = _LEADING_INT.match(fields[-1])
        if not match:
            raise ParseError(f"unreadable temperature: {fields[-1]!r}")
        return int(match.group())
    return None


def parse_smart_health(raw: str) -> bool:
    return SMART_PASSED in raw


def parse_container_names(raw: str) -> List[str]:
    return [line.strip() for line in raw.splitlines() if line.strip()]
