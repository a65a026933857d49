# slave_bridge/core/logger.py
from loguru import logger
import sys
import os
from pathlib import Path

# 获取运行环境
ENV = os.getenv("ENV", "development").lower()

# 清除默认 handler
logger.remove()

# 控制台输出
logger.add(
    sys.stderr,
    level="DEBUG" if ENV == "development" else "INFO",
    colorize=True,
    backtrace=True,
    diagnose=False,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level: <8}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>"
)

_file_sink_ids = []


def setup_file_logging(log_dir: str, rotation: str = "1 week", retention: str = "1 month"):
    """
    根据 LoggingConfig 挂载文件日志。
    重复调用时会先移除上一次挂载的文件 sink，避免日志重复写入。
    """
    global _file_sink_ids
    for sink_id in _file_sink_ids:
        logger.remove(sink_id)
    _file_sink_ids = []

    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    # 普通文本日志输出到文件
    _file_sink_ids.append(logger.add(
        path / "slave_bridge.log",
        level="DEBUG",
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
    ))

    # JSON 结构化日志输出
    _file_sink_ids.append(logger.add(
        path / "slave_bridge.json",
        level="WARNING",  # 只记录警告及以上
        rotation=rotation,
        retention=retention,
        serialize=True,
        encoding="utf-8",
        enqueue=True,
    ))
    logger.debug(f"File logging enabled at {path.resolve()}")

