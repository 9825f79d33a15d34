"""
配置管理模块

从 YAML 文件加载配置，配置文件不存在时使用默认值
"""

import os
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


DEFAULT_CONFIG_PATH = "/etc/health-agent/config.yaml"


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AgentConfig(BaseModel):
    """Agent 配置模型"""

    listen: Optional[str] = Field(default=None, description="TCP 监听地址 host:port（可选）")
    socket: Optional[str] = Field(default=None, description="Unix socket 路径（可选）")
    probe_timeout: float = Field(default=10.0, gt=0, description="单个探针超时（秒）")
    probe_timeouts: Dict[str, float] = Field(default_factory=dict, description="按探针名覆盖超时")
    enumeration_timeout: float = Field(default=10.0, gt=0, description="磁盘枚举超时（秒）")
    queue_timeout: float = Field(default=30.0, ge=0, description="探针等待执行槽位的额外时间（秒）")
    max_concurrency: int = Field(default=8, ge=1, description="同时运行的外部进程上限")
    empty_drives: Literal["healthy", "failure"] = Field(
        default="healthy",
        description="没有任何磁盘时 drives.healthy 的取值策略"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("listen")
    @classmethod
    def validate_listen(cls, v: Optional[str]) -> Optional[str]:
        """listen 必须是 host:port"""
        if v is None:
            return v
        host, _, port = v.rpartition(":")
        if not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid listen address: {v!r}. Expected host:port")
        return v

    @property
    def host(self) -> str:
        """获取监听主机"""
        return self.listen.rsplit(":", 1)[0].strip("[]")

    @property
    def port(self) -> int:
        """获取监听端口"""
        return int(self.listen.rsplit(":", 1)[1])

    def timeout_for(self, probe_name: str) -> float:
        return self.probe_timeouts.get(probe_name, self.probe_timeout)


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 HEALTH_AGENT_CONFIG
    3. 默认路径 /etc/health-agent/config.yaml

    Returns:
        AgentConfig 实例
    """
    if config_path is None:
        config_path = os.getenv("HEALTH_AGENT_CONFIG", DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)
    if not config_file.exists():
        return AgentConfig()

    with open(config_file, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    return AgentConfig(**(config_data or {}))


# 全局配置实例（延迟加载）
_config: Optional[AgentConfig] = None


def get_config() -> AgentConfig:
    """获取全局配置实例"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
