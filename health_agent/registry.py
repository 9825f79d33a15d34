"""
探针目录

固定的探针集合，以及探针结果到报告结构的映射。
"""

from datetime import timezone
from typing import Any, Dict, Iterable, List, Sequence

from pydantic import TypeAdapter, ValidationError

from health_agent.models import (
    DRIVES,
    DriveTemperature,
    Failure,
    FailureCategory,
    LoadAverage,
    ProbeDescriptor,
    ProbeKind,
    ProbeOutcome,
    Snapshot,
    Success,
)
from health_agent.probes import (
    Probe,
    gather_docker_failed,
    gather_drive_health,
    gather_drive_temps,
    gather_load,
    gather_os,
    gather_ram,
    gather_uptime,
    gather_zfs_health,
    gather_zfs_space,
)


KNOWN_INPUTS = frozenset({DRIVES})


class AggregationError(Exception):
    """采集周期本身失败（而非某个探针失败）"""


def _descriptor(name, kind, payload_type, dependencies=()):
    return ProbeDescriptor(
        name=name,
        kind=kind,
        path=tuple(name.split(".")),
        payload_type=payload_type,
        dependencies=frozenset(dependencies)
    )


DEFAULT_PROBES = (
    Probe(_descriptor("uptime", ProbeKind.SCALAR, str), gather_uptime),
    Probe(_descriptor("os", ProbeKind.SCALAR, str), gather_os),
    Probe(_descriptor("load", ProbeKind.STRUCTURED, LoadAverage), gather_load),
    Probe(_descriptor("ram", ProbeKind.SCALAR, int), gather_ram),
    Probe(_descriptor("zfs.healthy", ProbeKind.BOOLEAN, bool), gather_zfs_health),
    Probe(_descriptor("zfs.percent", ProbeKind.SCALAR, int), gather_zfs_space),
    Probe(_descriptor("drives.temp", ProbeKind.STRUCTURED, DriveTemperature, {DRIVES}), gather_drive_temps),
    Probe(_descriptor("drives.healthy", ProbeKind.BOOLEAN, bool, {DRIVES}), gather_drive_health),
    Probe(_descriptor("docker.failed", ProbeKind.STRUCTURED, List[str]), gather_docker_failed),
)


class ProbeRegistry:
    """
    探针目录（构造后只读）

    构造时校验：
    - 探针名唯一
    - 依赖只能是已知的外部输入（目前只有磁盘列表）
    - 报告路径之间没有前缀冲突
    """

    def __init__(self, probes: Iterable[Probe] = DEFAULT_PROBES):
        self._probes: Dict[str, Probe] = {}
        for probe in probes:
            if probe.name in self._probes:
                raise AggregationError(f"duplicate probe name: {probe.name}")
            unknown = probe.descriptor.dependencies - KNOWN_INPUTS
            if unknown:
                raise AggregationError(f"probe {probe.name} has unknown dependencies: {sorted(unknown)}")
            self._probes[probe.name] = probe

        paths = sorted(p.descriptor.path for p in self._probes.values())
        for shorter, longer in zip(paths, paths[1:]):
            if longer[:len(shorter)] == shorter:
                raise AggregationError(f"report path {'.'.join(shorter)} overlaps {'.'.join(longer)}")

        self._adapters = {
            name: TypeAdapter(probe.descriptor.payload_type)
            for name, probe in self._probes.items()
        }

    @property
    def names(self) -> List[str]:
        return sorted(self._probes)

    @property
    def probes(self) -> List[Probe]:
        return [self._probes[name] for name in self.names]

    @property
    def independent(self) -> List[Probe]:
        return [p for p in self.probes if not p.descriptor.needs_drives]

    @property
    def drive_dependent(self) -> List[Probe]:
        return [p for p in self.probes if p.descriptor.needs_drives]

    def __contains__(self, name: str) -> bool:
        return name in self._probes

    def __len__(self) -> int:
        return len(self._probes)

    def check_payload(self, name: str, outcome: ProbeOutcome) -> ProbeOutcome:
        """
        校验 Success 载荷类型是否与描述一致

        不一致时转换为 parse-error，不影响其他探针。
        """
        if not isinstance(outcome, Success):
            return outcome
        try:
            self._adapters[name].validate_python(outcome.value, strict=True)
        except ValidationError as e:
            return Failure(
                reason=f"unexpected payload type {type(outcome.value).__name__}: {e.error_count()} error(s)",
                category=FailureCategory.PARSE_ERROR
            )
        return outcome

    def build_report(self, snapshot: Snapshot) -> Dict[str, Any]:
        """
        按报告结构展开快照

        失败的探针字段为 None，失败原因集中在 errors 中。
        """
        report: Dict[str, Any] = {}
        errors: Dict[str, Dict[str, str]] = {}

        for probe in self.probes:
            outcome = snapshot.outcomes[probe.name]
            if isinstance(outcome, Success):
                value = self._adapters[probe.name].dump_python(outcome.value, mode="json")
            else:
                value = None
                errors[probe.name] = {"category": outcome.category.value, "reason": outcome.reason}
            _assign(report, probe.descriptor.path, value)

        report["errors"] = errors
        report["meta"] = {
            "started_at": snapshot.started_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration_ms": round(snapshot.duration_ms, 1),
        }
        return report


def _assign(target: Dict[str, Any], path: Sequence[str], value: Any):
    for key in path[:-1]:
        target = target.setdefault(key, {})
    target[path[-1]] = value
