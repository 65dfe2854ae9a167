import time

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import settings


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 HTTP 요청을 로깅하는 미들웨어.

    기록 항목: 메서드, 경로, 클라이언트 IP, 상태코드, 처리시간(ms)
    처리시간이 SLOW_REQUEST_MS를 넘으면 WARNING 레벨로 기록.
    동기 응답인 생성 요청(/api/generate)은 원격 호출 시간이 그대로 잡힌다.
    """

    def __init__(self, app, slow_threshold_ms: int | None = None):
        super().__init__(app)
        self.slow_threshold_ms = slow_threshold_ms or settings.SLOW_REQUEST_MS

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - start) * 1000
        client_ip = request.client.host if request.client else "unknown"
        line = f"{request.method} {request.url.path} | {client_ip} | {response.status_code} | {elapsed_ms:.0f}ms"

        if elapsed_ms > self.slow_threshold_ms:
            logger.warning(f"{line} (slow)")
        else:
            logger.info(line)

        return response
