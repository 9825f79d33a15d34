"""
磁盘枚举

每个采集周期调用一次 lsblk，结果供按盘探针使用。
"""

import asyncio
import logging

from health_agent.invoker import ToolError, ToolInvoker
from health_agent.models import Failure, FailureCategory, ProbeOutcome, Success
from health_agent.parsers import ParseError, parse_lsblk

logger = logging.getLogger(__name__)


async def list_drives(invoker: ToolInvoker, timeout: float = 10.0, queue_timeout: float = 0.0) -> ProbeOutcome:
    """
    枚举块设备

    Returns:
        Success(value=["/dev/sda", ...]) 或 Failure（不重试，不抛异常）
    """
    try:
        raw = await asyncio.wait_for(
            invoker.run("lsblk", "-J", timeout=timeout),
            timeout=timeout + queue_timeout
        )
        drives = parse_lsblk(raw)
    except asyncio.TimeoutError:
        failure = Failure(reason=f"lsblk timed out after {timeout}s", category=FailureCategory.TIMEOUT)
    except ToolError as e:
        failure = Failure(reason=str(e), category=FailureCategory.EXTERNAL_TOOL_ERROR)
    except ParseError as e:
        failure = Failure(reason=str(e), category=FailureCategory.PARSE_ERROR)
    except Exception as e:
        logger.exception("Drive enumeration crashed")
        failure = Failure(reason=f"{type(e).__name__}: {e}", category=FailureCategory.EXTERNAL_TOOL_ERROR)
    else:
        logger.debug(f"Enumerated {len(drives)} drive(s): {drives}")
        return Success(value=tuple(drives))

    logger.warning(f"Drive enumeration failed: {failure.reason}")
    return failure
