"""
로깅 설정
==========

각 모듈은 logging.getLogger(__name__)으로 기록하고, setup_logging은
패키지 로거에 간결한 StreamHandler 하나만 붙인다.

비밀 입력 (x, y, nullifier)은 기록하지 않는다.
커밋먼트, 세션 id, 트랜잭션 해시는 기록한다.
"""

import logging

PACKAGE_LOGGER = "zkgrid"


def setup_logging(level=logging.INFO):
    """패키지 로거를 설정해서 반환한다. 다시 부르면 레벨만 바꾼다."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if logger.handlers:
        return logger
    ch = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    ch.setFormatter(fmt)
    logger.addHandler(ch)
    return logger


def short_hex(value, width=10):
    """로그용으로 커밋먼트나 해시를 줄인다: 0x1234abcd…"""
    if isinstance(value, int):
        text = "0x%064x" % value
    elif isinstance(value, bytes):
        text = "0x" + value.hex()
    else:
        text = value
    return text if len(text) <= width else text[:width] + "…"
