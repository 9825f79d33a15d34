"""
ZFS 存储池探针
"""

from health_agent.parsers import parse_zfs_list, parse_zpool_status
from health_agent.probes.base import ProbeContext


async def gather_zfs_health(context: ProbeContext) -> bool:
    raw = await context.invoker.run("zpool", "status", "-x")
    return parse_zpool_status(raw)


async def gather_zfs_space(context: ProbeContext) -> int:
    """第一个数据集（通常是池根）的使用率"""
    raw = await context.invoker.run("zfs", "list", "-Hp")
    return parse_zfs_list(raw)
