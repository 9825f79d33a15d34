"""
容器探针

列出已退出/死亡以及健康检查失败的容器。
"""

from typing import List

from health_agent.parsers import merge_container_names, parse_container_names
from health_agent.probes.base import ProbeContext, run_all


EXITED_ARGS = (
    "docker", "ps", "-a",
    "--filter", "status=exited",
    "--filter", "status=dead",
    "--format", "{{.Names}}",
)
UNHEALTHY_ARGS = (
    "docker", "ps", "-a",
    "--filter", "health=unhealthy",
    "--format", "{{.Names}}",
)


async def gather_docker_failed(context: ProbeContext) -> List[str]:
    exited, unhealthy = await run_all(context.invoker, EXITED_ARGS, UNHEALTHY_ARGS)
    return merge_container_names(
        parse_container_names(exited),
        parse_container_names(unhealthy)
    )
