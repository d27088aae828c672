import logging
import os


ROOT_LOGGER = "chatrelay"
LEVEL_ENV = "CHATRELAY_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"


def level_from_env() -> str:
    level = os.environ.get(LEVEL_ENV, DEFAULT_LEVEL).upper()
    # getLevelName maps unknown names to "Level <name>" instead of a number.
    if not isinstance(logging.getLevelName(level), int):
        return DEFAULT_LEVEL
    return level


def _root_logger() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        # StreamHandler writes to stderr; stdout carries relayed bytes.
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(level_from_env())
    return logger


def get_logger(name: str) -> logging.Logger:
    _root_logger()
    return logging.getLogger(name)


def set_level(level: int | str):
    _root_logger().setLevel(level)
