"""세션 메모리에만 존재하는 이미지 레코드.

SourceImage는 업로드 시 생성되어 세션이 끝날 때까지 변하지 않는다.
ProcessedResult는 원본 id당 최대 1개 (새 결과가 이전 결과를 대체),
GeneratedResult는 최신순 리스트에 누적된다.
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from core.exceptions import TransformFailed

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?,(?P<data>.*)$", re.DOTALL)


class ImageFormat(str, Enum):
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return "image/jpeg" if self is ImageFormat.JPG else f"image/{self.value}"

    @property
    def pil_format(self) -> str:
        return {"jpg": "JPEG", "png": "PNG", "webp": "WEBP"}[self.value]

    @property
    def lossy(self) -> bool:
        return self in (ImageFormat.JPG, ImageFormat.WEBP)


@dataclass(frozen=True)
class Payload:
    """메모리에 인코딩된 이미지 + 컨테이너 media type."""

    data: bytes
    mime_type: str

    @classmethod
    def from_data_url(cls, data_url: str) -> "Payload":
        """`data:<mime>;base64,<b64>` 문자열을 파싱한다."""
        match = _DATA_URL_RE.match(data_url.strip())
        if not match or not match.group("mime"):
            raise TransformFailed("Not an image data URL")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransformFailed(f"Invalid base64 image data: {e}") from e
        return cls(data=data, mime_type=match.group("mime"))

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @property
    def extension(self) -> str:
        match = re.match(r"image/(\w+)", self.mime_type)
        return match.group(1) if match else "jpg"

    def is_format(self, fmt: ImageFormat) -> bool:
        return self.mime_type == fmt.mime_type


@dataclass(frozen=True)
class SourceImage:
    id: str
    filename: str
    payload: Payload
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def preview_url(self) -> str:
        return self.payload.to_data_url()


@dataclass(frozen=True)
class ProcessedResult:
    original_id: str
    payload: Payload


@dataclass(frozen=True)
class GeneratedResult:
    payload: Payload
    prompt: str
