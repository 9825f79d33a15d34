"""
数据模型定义

- 探针描述（静态目录）
- 探针结果（Success / Failure 二选一）
- 快照（一次采集周期的不可变结果）
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


DRIVES = "drives"


class ProbeKind(str, Enum):
    SCALAR = "scalar"
    STRUCTURED = "structured"
    BOOLEAN = "boolean"


class FailureCategory(str, Enum):
    TIMEOUT = "timeout"
    EXTERNAL_TOOL_ERROR = "external-tool-error"
    PARSE_ERROR = "parse-error"
    DEPENDENCY_UNAVAILABLE = "dependency-unavailable"


@dataclass(frozen=True)
class ProbeDescriptor:
    """
    探针描述

    name 同时是快照中的键；path 是报告中的嵌套路径，
    如 ("zfs", "percent")。
    """
    name: str
    kind: ProbeKind
    path: Tuple[str, ...]
    payload_type: Any
    dependencies: FrozenSet[str] = field(default_factory=frozenset)
    timeout: Optional[float] = None

    @property
    def needs_drives(self) -> bool:
        return DRIVES in self.dependencies


# =============================================================================
# 探针载荷
# =============================================================================

class LoadAverage(BaseModel):
    """系统负载（保留两位小数，截断）"""
    model_config = ConfigDict(frozen=True)

    load1: float
    load5: float
    load15: float


class DriveTemperature(BaseModel):
    """磁盘温度汇总（摄氏度）"""
    model_config = ConfigDict(frozen=True)

    max: int
    avg: int


# =============================================================================
# 探针结果
# =============================================================================

class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["ok"] = "ok"
    value: Any


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    reason: str
    category: FailureCategory


ProbeOutcome = Annotated[Union[Success, Failure], Field(discriminator="status")]


class Snapshot(BaseModel):
    """一次采集周期的结果，构造后不再修改"""
    model_config = ConfigDict(frozen=True)

    started_at: datetime = Field(..., description="周期开始时间 (UTC)")
    duration_ms: float = Field(..., description="周期总耗时（毫秒）")
    outcomes: Dict[str, ProbeOutcome] = Field(..., description="探针名 -> 结果")

    @property
    def failures(self) -> Dict[str, Failure]:
        return {
            name: outcome
            for name, outcome in self.outcomes.items()
            if isinstance(outcome, Failure)
        }

    @property
    def names(self) -> List[str]:
        return list(self.outcomes)
