"""
外部命令调用

所有探针都通过 ToolInvoker 执行外部工具，测试中可替换为假实现。
"""

import asyncio
import logging
from typing import Optional, Sequence, Set

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """外部工具不存在或以非零状态退出"""

    def __init__(self, argv: Sequence[str], message: str, returncode: Optional[int] = None):
        self.argv = list(argv)
        self.returncode = returncode
        super().__init__(f"{argv[0]}: {message}")


class ToolInvoker:
    """
    运行外部命令并返回 stdout

    - 通过信号量限制同时存在的子进程数量（信号量在首次调用时于当前事件循环中创建）
    - timeout 只计算拿到执行槽位之后的时间，排队等待不计入
    - 超时或调用方取消时终止并回收子进程
    """

    def __init__(self, max_concurrency: int = 8, kill_grace: float = 1.0):
        self.max_concurrency = max_concurrency
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._kill_grace = kill_grace
        self._running: Set[asyncio.subprocess.Process] = set()

    @property
    def active(self) -> int:
        """当前仍在运行的子进程数量"""
        return len(self._running)

    async def run(self, *argv: str, timeout: Optional[float] = None) -> str:
        """
        执行命令

        Returns:
            去掉首尾空白的 stdout

        Raises:
            ToolError: 命令无法启动或退出码非零
            asyncio.TimeoutError: 进程运行超过 timeout 秒
        """
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)

        async with self._semaphore:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE
                )
            except OSError as e:
                raise ToolError(argv, f"cannot execute ({e.strerror or e})") from e

            self._running.add(proc)
            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                await self._terminate(proc)
                raise
            finally:
                self._running.discard(proc)

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip() or f"exit status {proc.returncode}"
            raise ToolError(argv, detail, proc.returncode)

        return stdout.decode(errors="replace").strip()

    async def _terminate(self, proc: asyncio.subprocess.Process):
        if proc.returncode is not None:
            return

        logger.debug(f"Terminating pid {proc.pid}")
        try:
            proc.terminate()
            await asyncio.wait_for(proc.wait(), timeout=self._kill_grace)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
        except ProcessLookupError:
            pass


class BoundInvoker:
    """给每次调用附带同一个超时的 ToolInvoker 视图（每个探针一个）"""

    def __init__(self, invoker: ToolInvoker, timeout: float):
        self._invoker = invoker
        self.timeout = timeout

    @property
    def active(self) -> int:
        return self._invoker.active

    async def run(self, *argv: str) -> str:
        return await self._invoker.run(*argv, timeout=self.timeout)
