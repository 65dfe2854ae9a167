"""asyncio 기반 배치 러너.

원격 호출(I/O-bound)은 이벤트 루프에서 항목마다 독립 태스크로 동시에 띄우고,
후처리(CPU-bound, Pillow)는 run_in_executor로 스레드풀에 위임해서
이벤트 루프를 블로킹하지 않는다.

동시 실행 개수 제한, 취소, 타임아웃은 없다: 한 번 띄운 항목은 성공이든 실패든
끝까지 실행되고, 배치는 모든 항목이 정착(settle)할 때까지 기다린다.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

K = TypeVar("K")
T = TypeVar("T")


async def run_settled(
    keys: Iterable[K], worker: Callable[[K], Awaitable[T]]
) -> dict[K, T | BaseException]:
    """키마다 worker를 동시에 실행하고 전부 정착하면 결과를 모아 반환한다.

    gather(return_exceptions=True): 첫 실패에서 멈추지 않고 모든 결과를 수집한다.
    한 항목의 예외는 그 키의 값으로 남을 뿐 다른 항목에 영향을 주지 않는다.
    """
    keys = list(keys)
    outcomes = await asyncio.gather(*(worker(k) for k in keys), return_exceptions=True)
    return dict(zip(keys, outcomes))


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """CPU-bound 함수를 기본 스레드풀에서 실행한다."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
