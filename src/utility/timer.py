"""처리 시간 측정 유틸리티."""

import time
from contextlib import contextmanager

from loguru import logger


@contextmanager
def timer(label: str = "", level: str = "INFO"):
    """컨텍스트 매니저: 블록 실행 시간을 측정한다.

    블록이 예외로 끝나도 경과 시간은 기록된다 (배치는 실패 항목이 있어도 끝까지 돈다).

    사용법:
        with timer("edit 3장") as t:
            await ...
        t.elapsed
    """
    t = _TimerResult()
    start = time.perf_counter()
    try:
        yield t
    finally:
        t.elapsed = time.perf_counter() - start
        if label:
            logger.log(level, f"[{label}] {t.elapsed:.3f}s")


class _TimerResult:
    elapsed: float = 0.0
