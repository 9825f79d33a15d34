"""
采集周期

一次 run() = 一个独立周期：
Idle -> Enumerating -> Probing -> Merging -> Complete

- 不依赖磁盘列表的探针与磁盘枚举同时开始
- 按盘探针在枚举结束后开始；枚举失败时直接记为 dependency-unavailable
- 等待全部探针结束后再合并，不因单个失败提前返回
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from health_agent.config import AgentConfig
from health_agent.drives import list_drives
from health_agent.invoker import ToolInvoker
from health_agent.models import Failure, FailureCategory, ProbeOutcome, Snapshot
from health_agent.probes import Probe, ProbeContext
from health_agent.registry import AggregationError, ProbeRegistry

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = "idle"
    ENUMERATING = "enumerating"
    PROBING = "probing"
    MERGING = "merging"
    COMPLETE = "complete"


class AggregationCycle:
    """单个采集周期，不与其他周期共享可变状态"""

    def __init__(self, registry: ProbeRegistry, invoker: ToolInvoker, config: AgentConfig):
        self.registry = registry
        self.invoker = invoker
        self.config = config
        self.state = CycleState.IDLE
        self._drives: Optional[asyncio.Task] = None

    def _transition(self, state: CycleState):
        logger.debug(f"Cycle {id(self):#x}: {self.state.value} -> {state.value}")
        self.state = state

    def _timeout(self, probe: Probe) -> float:
        if probe.descriptor.timeout is not None:
            return probe.descriptor.timeout
        return self.config.timeout_for(probe.name)

    async def _run_independent(self, probe: Probe) -> ProbeOutcome:
        context = ProbeContext(invoker=self.invoker, empty_drives=self.config.empty_drives)
        return await probe.execute(context, self._timeout(probe), self.config.queue_timeout)

    async def _run_drive_dependent(self, probe: Probe) -> ProbeOutcome:
        drives = await self._drives
        if isinstance(drives, Failure):
            return Failure(
                reason=f"drive enumeration failed ({drives.category.value}): {drives.reason}",
                category=FailureCategory.DEPENDENCY_UNAVAILABLE
            )
        context = ProbeContext(
            invoker=self.invoker,
            drives=drives.value,
            empty_drives=self.config.empty_drives
        )
        return await probe.execute(context, self._timeout(probe), self.config.queue_timeout)

    async def _enumerate(self) -> ProbeOutcome:
        outcome = await list_drives(
            self.invoker,
            timeout=self.config.enumeration_timeout,
            queue_timeout=self.config.queue_timeout
        )
        self._transition(CycleState.PROBING)
        return outcome

    async def run(self) -> Snapshot:
        if self.state is not CycleState.IDLE:
            raise AggregationError(f"cycle already {self.state.value}")

        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        self._transition(CycleState.ENUMERATING)
        tasks: Dict[str, asyncio.Task] = {}
        try:
            if self.registry.drive_dependent:
                self._drives = asyncio.ensure_future(self._enumerate())
            else:
                self._transition(CycleState.PROBING)

            for probe in self.registry.independent:
                tasks[probe.name] = asyncio.ensure_future(self._run_independent(probe))
            for probe in self.registry.drive_dependent:
                tasks[probe.name] = asyncio.ensure_future(self._run_drive_dependent(probe))

            results = await asyncio.gather(*tasks.values(), return_exceptions=True)
        except BaseException:
            for task in tasks.values():
                task.cancel()
            if self._drives is not None:
                self._drives.cancel()
            raise

        self._transition(CycleState.MERGING)
        outcomes: Dict[str, ProbeOutcome] = {}
        for name, result in zip(tasks, results):
            if isinstance(result, BaseException):
                # execute() 本身不抛异常，这里只会是意外情况
                logger.error(f"Probe {name} raised past execute(): {result!r}")
                result = Failure(
                    reason=f"{type(result).__name__}: {result}",
                    category=FailureCategory.EXTERNAL_TOOL_ERROR
                )
            outcomes[name] = self.registry.check_payload(name, result)

        missing = [name for name in self.registry.names if name not in outcomes]
        if missing:
            raise AggregationError(f"snapshot is missing probes: {missing}")

        snapshot = Snapshot(
            started_at=started_at,
            duration_ms=(time.monotonic() - start) * 1000.0,
            outcomes={name: outcomes[name] for name in self.registry.names}
        )
        self._transition(CycleState.COMPLETE)

        failed = len(snapshot.failures)
        logger.info(
            f"Collected {len(outcomes)} probe(s) in {snapshot.duration_ms:.0f} ms"
            + (f", {failed} failed" if failed else "")
        )
        return snapshot


class Aggregator:
    """
    采集入口

    registry 在各周期间共享（只读）。每次 run() 创建新的 AggregationCycle，
    以及它自己的 ToolInvoker（并发上限 max_concurrency），
    并发请求之间不争用执行槽位。测试可注入固定的 invoker。
    """

    def __init__(
        self,
        config: AgentConfig,
        registry: Optional[ProbeRegistry] = None,
        invoker: Optional[ToolInvoker] = None
    ):
        self.config = config
        self.registry = registry if registry is not None else ProbeRegistry()
        self.invoker = invoker

    def _invoker_for_cycle(self) -> ToolInvoker:
        if self.invoker is not None:
            return self.invoker
        return ToolInvoker(self.config.max_concurrency)

    async def run(self) -> Snapshot:
        cycle = AggregationCycle(self.registry, self._invoker_for_cycle(), self.config)
        return await cycle.run()

    async def report(self) -> dict:
        """运行一个周期并按报告结构展开"""
        snapshot = await self.run()
        return self.registry.build_report(snapshot)
