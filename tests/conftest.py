"""
测试公共夹具

FakeInvoker 按命令参数返回预设输出，不启动任何真实进程。
"""

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Optional, Tuple, Union

import pytest

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from health_agent.config import AgentConfig, reset_config
from health_agent.invoker import ToolError
from health_agent.probes import system


Argv = Tuple[str, ...]


class FakeInvoker:
    """
    假的 ToolInvoker

    responses: argv -> stdout 字符串或要抛出的异常
    delays:    argv -> 返回前等待的秒数
    未配置的命令视为不存在。
    """

    def __init__(
        self,
        responses: Optional[Dict[Argv, Union[str, BaseException]]] = None,
        delays: Optional[Dict[Argv, float]] = None
    ):
        self.responses = responses if responses is not None else {}
        self.delays = dict(delays or {})
        self.calls = []
        self.cancelled = []

    @property
    def active(self) -> int:
        return 0

    async def run(self, *argv: str, timeout: Optional[float] = None) -> str:
        self.calls.append(argv)
        delay = self.delays.get(argv)
        if delay:
            try:
                await asyncio.wait_for(asyncio.sleep(delay), timeout=timeout)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                self.cancelled.append(argv)
                raise
        if argv not in self.responses:
            raise ToolError(argv, "cannot execute (No such file or directory)")
        response = self.responses[argv]
        if isinstance(response, BaseException):
            raise response
        return response


LSBLK = '{"blockdevices": [{"name": "sda"}, {"name": "sdb"}, {"name": "sdc"}]}'

OS_RELEASE = '''NAME="Debian GNU/Linux"
VERSION_ID="12"
PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
ID=debian
'''

FREE = '''               total        used        free      shared  buff/cache   available
Mem:        16000000     4000000     2000000      100000    10000000    11500000
Swap:        2000000           0     2000000'''

ZFS_LIST = "tank\t300\t700\t96\t/tank\ntank/data\t200\t700\t200\t/tank/data"

SMART_PASSED = '''smartctl 7.3 2022-02-28 r5338 [x86_64-linux-6.1.0] (local build)

=== START OF READ SMART DATA SECTION ===
SMART overall-health self-assessment test result: PASSED
'''

SMART_FAILED = '''=== START OF READ SMART DATA SECTION ===
SMART overall-health self-assessment test result: FAILED!
Drive failure expected in less than 24 hours. SAVE ALL DATA.
'''


def smart_attributes(temperature: int) -> str:
    return f'''=== START OF READ SMART DATA SECTION ===
ID# ATTRIBUTE_NAME          FLAG     VALUE WORST THRESH TYPE      UPDATED  WHEN_FAILED RAW_VALUE
  9 Power_On_Hours          0x0032   090   090   000    Old_age   Always       -       8760
190 Airflow_Temperature_Cel 0x0022   065   052   045    Old_age   Always       -       35
194 Temperature_Celsius     0x0022   070   055   000    Old_age   Always       -       {temperature}
'''


DOCKER_EXITED = (
    "docker", "ps", "-a",
    "--filter", "status=exited",
    "--filter", "status=dead",
    "--format", "{{.Names}}",
)
DOCKER_UNHEALTHY = (
    "docker", "ps", "-a",
    "--filter", "health=unhealthy",
    "--format", "{{.Names}}",
)


def healthy_host_responses() -> Dict[Argv, Union[str, BaseException]]:
    """一台正常主机的全部命令输出（3 块盘，温度 30/40/50）"""
    responses = {
        ("lsblk", "-J"): LSBLK,
        ("cat", "/etc/os-release"): OS_RELEASE,
        ("free",): FREE,
        ("zpool", "status", "-x"): "all pools are healthy",
        ("zfs", "list", "-Hp"): ZFS_LIST,
        DOCKER_EXITED: "a\nb",
        DOCKER_UNHEALTHY: "b\nc",
    }
    for drive, temperature in (("/dev/sda", 30), ("/dev/sdb", 40), ("/dev/sdc", 50)):
        responses[("smartctl", "-A", drive)] = smart_attributes(temperature)
        responses[("smartctl", "-H", drive)] = SMART_PASSED
    return responses


@pytest.fixture
def responses():
    return healthy_host_responses()


@pytest.fixture
def invoker(responses):
    return FakeInvoker(responses)


@pytest.fixture
def config():
    return AgentConfig(probe_timeout=2.0, enumeration_timeout=2.0)


@pytest.fixture(autouse=True)
def fake_host(monkeypatch):
    """固定运行时间（1 天 2 小时 3 分 4 秒）和系统负载"""
    monkeypatch.setattr(system, "time", SimpleNamespace(time=lambda: 1_000_093_784.0))
    monkeypatch.setattr(system.psutil, "boot_time", lambda: 1_000_000_000.0)
    monkeypatch.setattr(system.psutil, "getloadavg", lambda: (0.29, 1.236, 2.0))


@pytest.fixture(autouse=True)
def _reset_config():
    reset_config()
    yield
    reset_config()
