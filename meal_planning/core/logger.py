"""
日志配置
"""
import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, debug: bool = False) -> logging.Logger:
    """获取已配置的 logger 实例"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return logger


def configure_logging(debug: bool = False) -> None:
    """按设置调整包内 logger 级别"""
    get_logger("meal_planning", debug)
