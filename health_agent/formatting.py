"""
报告输出格式

- JSON：tab 缩进，与 HTTP 接口字段一致
- 文本：供终端直接阅读
"""

import json
from typing import Any, Dict, List


def to_json(report: Dict[str, Any]) -> str:
    return json.dumps(report, indent="\t", ensure_ascii=False)


def _fmt(value: Any, suffix: str = "") -> str:
    if value is None:
        return "unavailable"
    if isinstance(value, bool):
        return "healthy" if value else "DEGRADED"
    return f"{value}{suffix}"


def to_text(report: Dict[str, Any]) -> str:
    """
    渲染为对齐的文本报告

    失败的探针显示 unavailable，并在末尾列出原因。
    """
    load = report.get("load") or {}
    zfs = report.get("zfs") or {}
    drives = report.get("drives") or {}
    temp = drives.get("temp") or {}
    failed_containers = (report.get("docker") or {}).get("failed")

    if report.get("load") is None:
        load_line = _fmt(None)
    else:
        load_line = f"{load['load1']}, {load['load5']}, {load['load15']}"

    if drives.get("temp") is None:
        temp_line = _fmt(None)
    else:
        temp_line = f"max {temp['max']}°C, avg {temp['avg']}°C"

    if failed_containers is None:
        docker_line = _fmt(None)
    elif failed_containers:
        docker_line = ", ".join(failed_containers)
    else:
        docker_line = "none"

    rows = [
        ("OS", _fmt(report.get("os"))),
        ("Uptime", _fmt(report.get("uptime"))),
        ("Load", load_line),
        ("Memory", _fmt(report.get("ram"), "% used")),
        ("ZFS pools", _fmt(zfs.get("healthy"))),
        ("ZFS usage", _fmt(zfs.get("percent"), "% used")),
        ("Drive health", _fmt(drives.get("healthy"))),
        ("Drive temp", temp_line),
        ("Failed containers", docker_line),
    ]
    width = max(len(label) for label, _ in rows)
    lines: List[str] = [f"{label.ljust(width)}  {value}" for label, value in rows]

    errors = report.get("errors") or {}
    if errors:
        lines.append("")
        lines.append("Errors:")
        for name, error in errors.items():
            lines.append(f"  {name}: [{error['category']}] {error['reason']}")

    return "\n".join(lines)
