"""pytest 공용 fixture.

모든 API 테스트는 in-memory SQLite DB와 새 Studio를 사용하여 격리된다.
원격 모델은 FakeEditClient로 대체되어 네트워크를 타지 않는다.
- studio: 빈 세션 상태
- edit_client: 호출을 기록하고 지정한 이미지에서 실패하는 가짜 클라이언트
- batch_service: studio + edit_client
- client: 위 객체들로 의존성을 오버라이드한 TestClient
"""

import asyncio
import io
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# 설정 싱글톤이 만들어지기 전에 파일 DB 대신 메모리 DB를 쓰게 한다
os.environ.setdefault("DATABASE_URL", "sqlite://")

# src/ 디렉토리를 import path에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from core.dependencies import get_batch_service, get_studio
from core.exceptions import NoImageReturned
from main import app
from model.database import get_session
from model.image import Payload
from service.batch_service import BatchService
from service.studio import Studio


def encode_image(
    width: int = 100, height: int = 100, color="red", fmt: str = "PNG", mode: str = "RGB"
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color=color).save(buf, format=fmt)
    return buf.getvalue()


_MIME = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


class FakeEditClient:
    """원격 모델 대역.

    fail_on에 담긴 원본 바이트가 들어오면 NoImageReturned로 실패한다.
    peak_in_flight로 동시에 몇 건이 진행됐는지 확인할 수 있다.
    """

    def __init__(self, result_size=(400, 300), result_format="PNG"):
        self.result_size = result_size
        self.result_format = result_format
        self.fail_on: set[bytes] = set()
        self.calls: list[tuple[str, str | None]] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.counter = 0

    async def _respond(self, operation: str, image: Payload | None, prompt: str | None) -> Payload:
        self.calls.append((operation, prompt))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if image is not None and image.data in self.fail_on:
                raise NoImageReturned
            self.counter += 1
            # 호출마다 색을 바꿔서 결과 바이트가 구분되게 한다
            color = (self.counter * 40 % 256, 80, 160)
            data = encode_image(*self.result_size, color=color, fmt=self.result_format)
            return Payload(data=data, mime_type=_MIME[self.result_format])
        finally:
            self.in_flight -= 1

    async def prompt_edit(self, image: Payload, prompt: str) -> Payload:
        return await self._respond("edit", image, prompt)

    async def remove_background(self, image: Payload) -> Payload:
        return await self._respond("remove-background", image, None)

    async def generate_from_text(self, prompt: str, aspect_ratio: str) -> Payload:
        return await self._respond("generate", None, prompt)


@pytest.fixture()
def make_payload():
    def _make(width=100, height=100, color="red", fmt="PNG", mode="RGB") -> Payload:
        return Payload(data=encode_image(width, height, color, fmt, mode), mime_type=_MIME[fmt])

    return _make


@pytest.fixture()
def session():
    """테스트마다 새 in-memory SQLite DB를 생성한다.

    StaticPool을 사용해야 모든 커넥션이 같은 in-memory DB를 공유한다.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture()
def studio():
    return Studio()


@pytest.fixture()
def edit_client():
    return FakeEditClient()


@pytest.fixture()
def batch_service(studio, edit_client):
    return BatchService(studio, edit_client)


@pytest.fixture()
def client(session, studio, batch_service):
    """세션/Studio/배치 서비스를 테스트용으로 오버라이드한 TestClient."""

    def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_studio] = lambda: studio
    app.dependency_overrides[get_batch_service] = lambda: batch_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def upload_file(filename: str = "test.png", color="blue", size=(100, 100)) -> tuple[str, io.BytesIO, str]:
    """업로드용 (filename, file, content_type) 튜플."""
    buf = io.BytesIO(encode_image(*size, color=color))
    return (filename, buf, "image/png")
