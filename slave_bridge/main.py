from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from slave_bridge.api.router import api_router
from slave_bridge.config import AppConfig, get_app_config
from slave_bridge.core.exceptions import BaseBusinessException
from slave_bridge.core.logger import logger
from slave_bridge.core.response_codes import ResponseCodeEnum
from slave_bridge.infra.storage.handler_factory import close_handler_factory


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 应用启动中...")
    yield
    # 应用关闭，释放与从机的连接池
    close_handler_factory()
    logger.info("🛑 应用已关闭")


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    config = config or get_app_config()
    app = FastAPI(title="Slave Bridge", lifespan=lifespan)

    @app.exception_handler(BaseBusinessException)
    async def business_exception_handler(request: Request, exc: BaseBusinessException):
        logger.warning(f"Business Exception | code: {exc.code}, message: {exc.message}, path: {request.url.path}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": exc.code,
                "message": exc.message,
                "data": None
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled Exception | {repr(exc)} | path: {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "code": ResponseCodeEnum.SERVER_ERROR.code,
                "message": ResponseCodeEnum.SERVER_ERROR.message,
                "data": None
            }
        )

    app.include_router(api_router, prefix=config.server.api_prefix)
    return app


app = create_app()
