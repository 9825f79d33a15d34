"""
探针模块

包含系统、ZFS、SMART 磁盘、容器探针
"""

from .base import Probe, ProbeContext
from .docker import gather_docker_failed
from .smart import gather_drive_health, gather_drive_temps
from .system import gather_load, gather_os, gather_ram, gather_uptime
from .zfs import gather_zfs_health, gather_zfs_space

__all__ = [
    "Probe",
    "ProbeContext",
    "gather_uptime",
    "gather_os",
    "gather_load",
    "gather_ram",
    "gather_zfs_health",
    "gather_zfs_space",
    "gather_drive_temps",
    "gather_drive_health",
    "gather_docker_failed",
]
