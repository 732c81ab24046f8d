import logging
from typing import Union

from uvicorn.logging import DefaultFormatter


def get_logger(name: str, log_level: Union[int, str] = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(log_level)
        ch = logging.StreamHandler()
        ch.setFormatter(DefaultFormatter(fmt="%(levelprefix)s %(message)s"))
        logger.addHandler(ch)

    return logger


def set_log_level(log_level: Union[int, str], prefix: str = "fasttx") -> None:
    """``prefix`` 로 시작하는 모든 로거의 레벨을 바꿉니다."""
    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(log_level)
