"""
探针基础设施

探针 = 描述 + 采集协程。execute() 是探针边界：
任何异常、超时都在这里转换为 Failure，不会向外抛出。
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, List, Tuple

from health_agent.invoker import BoundInvoker, ToolError, ToolInvoker
from health_agent.models import Failure, FailureCategory, ProbeDescriptor, ProbeOutcome, Success
from health_agent.parsers import ParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeContext:
    """单次探针执行的输入（只读）"""
    invoker: ToolInvoker
    drives: Tuple[str, ...] = ()
    empty_drives: str = "healthy"


Collector = Callable[[ProbeContext], Awaitable[Any]]


class Probe:
    def __init__(self, descriptor: ProbeDescriptor, collect: Collector):
        self.descriptor = descriptor
        self._collect = collect

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def execute(self, context: ProbeContext, timeout: float, queue_timeout: float = 0.0) -> ProbeOutcome:
        """
        在超时限制内运行探针

        每条外部命令从拿到执行槽位开始计时，最多运行 timeout 秒，
        超时时进程被终止。等待槽位另有 queue_timeout 秒的余量，
        整个探针最多 timeout + queue_timeout 秒。
        """
        bound = replace(context, invoker=BoundInvoker(context.invoker, timeout))
        try:
            value = await asyncio.wait_for(self._collect(bound), timeout=timeout + queue_timeout)
        except asyncio.TimeoutError:
            return self._fail(f"timed out after {timeout}s", FailureCategory.TIMEOUT)
        except ToolError as e:
            return self._fail(str(e), FailureCategory.EXTERNAL_TOOL_ERROR)
        except ParseError as e:
            return self._fail(str(e), FailureCategory.PARSE_ERROR)
        except (ValueError, IndexError, KeyError, TypeError) as e:
            logger.exception(f"Probe {self.name} could not interpret tool output")
            return self._fail(f"{type(e).__name__}: {e}", FailureCategory.PARSE_ERROR)
        except Exception as e:
            logger.exception(f"Probe {self.name} crashed")
            return self._fail(f"{type(e).__name__}: {e}", FailureCategory.EXTERNAL_TOOL_ERROR)

        return Success(value=value)

    def _fail(self, reason: str, category: FailureCategory) -> Failure:
        logger.warning(f"Probe {self.name} failed ({category.value}): {reason}")
        return Failure(reason=reason, category=category)

    def __repr__(self) -> str:
        return f"<Probe {self.name!r} kind={self.descriptor.kind.value}>"


async def run_all(invoker: ToolInvoker, *commands: Tuple[str, ...]) -> List[str]:
    """
    并发执行多条命令，全部结束后再返回

    有命令失败时抛出第一个异常，不留下仍在运行的兄弟进程。
    """
    results = await asyncio.gather(
        *(invoker.run(*argv) for argv in commands),
        return_exceptions=True
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
