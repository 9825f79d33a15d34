"""
SMART 磁盘探针

对枚举出的每块磁盘并发调用 smartctl。
"""

import asyncio
import logging
from typing import List

from health_agent.invoker import ToolError
from health_agent.models import DriveTemperature
from health_agent.parsers import (
    ParseError,
    aggregate_temperatures,
    all_passed,
    parse_smart_health,
    parse_smart_temperature,
)
from health_agent.probes.base import ProbeContext, run_all

logger = logging.getLogger(__name__)


async def gather_drive_temps(context: ProbeContext) -> DriveTemperature:
    """
    汇总所有磁盘温度

    没有温度属性或 smartctl 失败的磁盘被跳过；
    所有磁盘都因工具失败而跳过时，报告工具错误。
    """
    tasks = [context.invoker.run("smartctl", "-A", drive) for drive in context.drives]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    readings: List[int] = []
    tool_errors: List[ToolError] = []
    for drive, result in zip(context.drives, results):
        if isinstance(result, ToolError):
            logger.debug(f"smartctl -A {drive} failed: {result}")
            tool_errors.append(result)
            continue
        if isinstance(result, BaseException):
            raise result

        reading = parse_smart_temperature(result)
        if reading is None:
            logger.debug(f"{drive} reports no temperature attribute")
            continue
        readings.append(reading)

    if not readings and tool_errors and len(tool_errors) == len(context.drives):
        raise tool_errors[0]
    return aggregate_temperatures(readings)


async def gather_drive_health(context: ProbeContext) -> bool:
    """所有磁盘都通过 SMART 自检时为 True"""
    if not context.drives:
        if context.empty_drives == "failure":
            raise ParseError("no drives to assess")
        return True

    commands = [("smartctl", "-H", drive) for drive in context.drives]
    outputs = await run_all(context.invoker, *commands)
    return all_passed(parse_smart_health(raw) for raw in outputs)
