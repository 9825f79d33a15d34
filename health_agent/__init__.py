"""
Host Health Agent

并发运行一组主机健康探针（运行时间、负载、内存、ZFS、SMART、容器），
汇总为一次性的快照：
- 命令行输出 JSON 或文本
- 或通过 Unix socket / TCP 提供 HTTP 接口
"""

__version__ = "1.0.0"
