import logging
import sys

from loguru import logger

from trend_radio.core.config import settings


class InterceptHandler(logging.Handler):
    """
    拦截标准库 logging 消息并转发到 Loguru
    """
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 跳过 logging 模块自身的栈帧
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging():
    """
    配置 Loguru 日志
    """
    logger.remove()

    # 1. 控制台
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        serialize=settings.LOG_JSON_FORMAT,
        enqueue=settings.LOG_ASYNC,
        backtrace=True,
        diagnose=settings.DEBUG,
    )

    # 2. 文件 (可选)
    if settings.LOG_FILE_PATH:
        logger.add(
            settings.LOG_FILE_PATH,
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            level=settings.LOG_LEVEL,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            encoding="utf-8",
            enqueue=settings.LOG_ASYNC,
            compression="zip",
        )

    # 3. 拦截标准库 logging (uvicorn, SQLAlchemy, httpx)
    logging.basicConfig(handlers=[InterceptHandler()], level=0)
    logging.getLogger("uvicorn.access").handlers = [InterceptHandler()]
    logging.getLogger("uvicorn.error").handlers = [InterceptHandler()]

    # httpx 每次探测都会打 INFO 请求日志，健康检查场景下过于嘈杂
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    logging.getLogger("root").setLevel(settings.LOG_LEVEL)

    return logger
