"""
Host Health Agent 主程序入口

使用方式:
    health-agent                    文本格式输出当前健康状态
    health-agent -j                 JSON 格式输出当前健康状态
    health-agent -d /run/health.sock  在 Unix socket 上提供 HTTP 接口
"""

import argparse
import asyncio
import logging
import os
import socket
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from health_agent.aggregator import Aggregator
from health_agent.config import AgentConfig, get_config
from health_agent.formatting import to_json, to_text
from health_agent.registry import AggregationError

logger = logging.getLogger("health_agent")


def setup_logging(config: AgentConfig):
    """配置日志（输出到 stderr，避免混入报告）"""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="health-agent",
        description="Print current host health, or serve it over HTTP."
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-d", "--daemonize",
        metavar="SOCKET",
        nargs="?",
        const="",
        help="listen on the specified Unix socket"
    )
    mode.add_argument(
        "-j", "--json",
        action="store_true",
        help="print current health as JSON and exit"
    )
    return parser


async def collect_report(config: AgentConfig) -> dict:
    return await Aggregator(config).report()


def print_report(config: AgentConfig, as_json: bool) -> int:
    try:
        report = asyncio.run(collect_report(config))
    except AggregationError as e:
        logger.error(f"Aggregation failed: {e}")
        return 1

    print(to_json(report) if as_json else to_text(report))
    return 0


def bind_unix_socket(path: str) -> socket.socket:
    """
    绑定 Unix socket

    先删除残留的 socket 文件，绑定后权限设为 0777。
    """
    if os.path.exists(path):
        os.unlink(path)

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(path)
    os.chmod(path, 0o777)
    return sock


def serve(config: AgentConfig, socket_path: Optional[str]) -> int:
    """以守护模式运行 HTTP 服务"""
    options = dict(log_level=config.logging.level.lower(), access_log=False)

    if socket_path:
        sock = bind_unix_socket(socket_path)
        logger.info(f"> listening on socket: {os.path.realpath(socket_path)}")
        server = uvicorn.Server(uvicorn.Config("health_agent.app:app", **options))
        server.run(sockets=[sock])
    else:
        logger.info(f"> listening on: {config.listen}")
        server = uvicorn.Server(
            uvicorn.Config("health_agent.app:app", host=config.host, port=config.port, **options)
        )
        server.run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """主程序入口"""
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logging(config)

    if args.daemonize is not None:
        socket_path = args.daemonize or config.socket
        if not socket_path and not config.listen:
            logger.warning("Missing daemon socket parameter")
            build_parser().print_help()
            return 2
        return serve(config, socket_path)

    return print_report(config, as_json=args.json)


if __name__ == "__main__":
    sys.exit(main())
