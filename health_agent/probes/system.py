"""
系统探针

运行时间、操作系统、负载、内存使用率
"""

import time
from typing import List

import psutil

from health_agent.models import LoadAverage
from health_agent.parsers import load_average, parse_free, parse_os_release
from health_agent.probes.base import ProbeContext


_UNITS = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def format_duration(seconds: float) -> str:
    """
    格式化为可读时长，省略为零的单位

    format_duration(93784) == "1 day 2 hours 3 minutes 4 seconds"
    """
    remaining = int(seconds)
    parts: List[str] = []
    for unit, size in _UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count} {unit}" if count == 1 else f"{count} {unit}s")
    return " ".join(parts) if parts else "0 seconds"


async def gather_uptime(context: ProbeContext) -> str:
    return format_duration(time.time() - psutil.boot_time())


async def gather_os(context: ProbeContext) -> str:
    raw = await context.invoker.run("cat", "/etc/os-release")
    return parse_os_release(raw)


async def gather_load(context: ProbeContext) -> LoadAverage:
    return load_average(psutil.getloadavg())


async def gather_ram(context: ProbeContext) -> int:
    """内存使用率（used / total，截断为整数）"""
    raw = await context.invoker.run("free")
    return parse_free(raw)
