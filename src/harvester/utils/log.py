import sys

from loguru import logger


def setup_logger(level: str = "INFO") -> None:
    # 一度デフォルトの設定を消してから再設定
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
