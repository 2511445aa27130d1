#!/usr/bin/env python3
"""
间隔复习学习助手 - FastAPI 主应用入口
Description: 课程按 0/1/3/7 天生成复习计划，REST API 管理课程与复习，WebSocket 推送数据变更
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from app.config.settings import settings
from app.utils.logger import setup_logging
from app.utils.database import init_db, check_db_connection
from app.utils.exceptions import ReviewTrackerError, SessionExpiredError, is_session_error
from app.utils.helpers import format_timestamp
from app.api.websocket_manager import websocket_manager

# 设置日志
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时初始化数据库
    - 关闭时清理连接
    """
    logger.info("初始化间隔复习应用...")

    try:
        init_db()
        logger.info("间隔复习应用启动完成")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    yield  # 应用运行期间

    logger.info("正在关闭间隔复习应用...")

    # 清理所有活跃的WebSocket连接
    for client_id in list(websocket_manager.active_connections.keys()):
        websocket_manager.disconnect(client_id)

    logger.info("间隔复习应用已安全关闭")

def create_application() -> FastAPI:
    """创建并配置FastAPI应用实例"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="保存链接、单词和句子，按固定间隔安排复习",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(SessionExpiredError)
    async def session_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "code": "session_expired"}
        )

    @app.exception_handler(ReviewTrackerError)
    async def business_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        if is_session_error(exc):
            return JSONResponse(
                status_code=401,
                content={"error": "会话已过期，请重新登录", "code": "session_expired"}
            )
        return JSONResponse(
            status_code=500,
            content={"error": "内部服务器错误"}
        )

    return app

# 创建应用实例
app = create_application()

# 导入并包含路由
from app.api.routes import lessons, review, dashboard, waiting_lessons, websocket

# 注册API路由
app.include_router(lessons.router, prefix="/api/v1/lessons", tags=["课程管理"])
app.include_router(review.router, prefix="/api/v1/reviews", tags=["复习管理"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["首页数据"])
app.include_router(waiting_lessons.router, prefix="/api/v1/waiting-lessons", tags=["待学清单"])
# WebSocket路由
app.include_router(websocket.router)

# 健康检查端点
@app.get("/")
async def root():
    """根端点 - 服务状态检查"""
    return {
        "status": "running",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": format_timestamp()
    }

@app.get("/health")
async def health_check():
    """健康检查端点"""
    db_status = check_db_connection()

    return {
        "status": "healthy" if db_status else "unhealthy",
        "database": "connected" if db_status else "disconnected",
        "active_connections": websocket_manager.get_connection_count(),
        "timestamp": format_timestamp()
    }

if __name__ == "__main__":
    """开发环境直接运行"""
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,  # 开发模式热重载
        log_level="info",
        ws_ping_interval=20,      # WebSocket心跳间隔
        ws_ping_timeout=20,       # WebSocket心跳超时
    )
