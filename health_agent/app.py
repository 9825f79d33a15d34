"""
FastAPI 应用

每个请求运行一个独立的采集周期，并发请求之间互不影响。
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from health_agent import __version__
from health_agent.aggregator import Aggregator
from health_agent.config import get_config
from health_agent.registry import AggregationError

logger = logging.getLogger(__name__)


# 全局采集器实例（延迟创建）
_aggregator: Optional[Aggregator] = None


async def get_aggregator() -> Aggregator:
    """获取采集器实例"""
    global _aggregator
    if _aggregator is None:
        _aggregator = Aggregator(get_config())
    return _aggregator


def create_app() -> FastAPI:
    app = FastAPI(
        title="Host Health Agent",
        version=__version__,
        description="主机健康快照"
    )

    @app.get("/")
    async def get_report(aggregator: Aggregator = Depends(get_aggregator)):
        """
        获取健康报告

        部分探针失败仍返回 200，失败原因见 errors 字段；
        只有采集周期本身失败时返回 500。
        """
        try:
            return await aggregator.report()
        except AggregationError as e:
            logger.warning(f"> error occurred, sending HTTP 500 response: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

    @app.get("/v1/snapshot")
    async def get_snapshot(aggregator: Aggregator = Depends(get_aggregator)):
        """获取原始快照（每个探针的 Success / Failure）"""
        try:
            snapshot = await aggregator.run()
        except AggregationError as e:
            logger.warning(f"> error occurred, sending HTTP 500 response: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})
        return JSONResponse(content=snapshot.model_dump(mode="json"))

    @app.on_event("startup")
    async def startup_event():
        logger.info("Host Health Agent starting up...")

    return app


app = create_app()
