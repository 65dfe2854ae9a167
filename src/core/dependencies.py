from fastapi import Request

from service.batch_service import BatchService
from service.studio import Studio


def get_studio(request: Request) -> Studio:
    """lifespan에서 만든 프로세스 단일 Studio."""
    return request.app.state.studio


def get_batch_service(request: Request) -> BatchService:
    return request.app.state.batch_service
