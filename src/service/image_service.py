import mimetypes
import re
import time
import uuid
from typing import Protocol

from loguru import logger

from model.image import GeneratedResult, Payload, ProcessedResult, SourceImage

PROMPT_PREFIX_LENGTH = 30


class FileLike(Protocol):
    filename: str | None
    content_type: str | None

    async def read(self) -> bytes: ...


def new_image_id(filename: str) -> str:
    """파일명 + 업로드 시각 기반 id. 같은 밀리초에 같은 이름이 와도 겹치지 않게 난수를 붙인다."""
    return f"{filename}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def detect_media_type(filename: str, content_type: str | None) -> str | None:
    if content_type and content_type != "application/octet-stream":
        return content_type
    return mimetypes.guess_type(filename)[0]


def ingest_data_url(filename: str, data_url: str) -> SourceImage | None:
    """`data:` URL 하나를 SourceImage로. 이미지가 아니면 None."""
    payload = Payload.from_data_url(data_url)
    if not payload.mime_type.startswith("image/"):
        logger.debug(f"Skipping non-image data URL {filename!r} ({payload.mime_type})")
        return None
    return SourceImage(id=new_image_id(filename), filename=filename, payload=payload)


async def ingest_files(files: list[FileLike]) -> list[SourceImage]:
    """업로드 파일 중 이미지만 메모리 Payload로 변환한다.

    이미지가 아닌 파일은 에러 없이 버린다.
    """
    images = []
    for upload in files:
        filename = upload.filename or "image"
        media_type = detect_media_type(filename, upload.content_type)
        if not media_type or not media_type.startswith("image/"):
            logger.debug(f"Skipping non-image upload {filename!r} ({media_type})")
            continue
        data = await upload.read()
        images.append(
            SourceImage(
                id=new_image_id(filename),
                filename=filename,
                payload=Payload(data=data, mime_type=media_type),
            )
        )
    return images


def edited_filename(result: ProcessedResult, source: SourceImage) -> str:
    """"edited-" + 확장자를 뗀 원본 이름 + "." + 결과 포맷 확장자."""
    base = ".".join(source.filename.split(".")[:-1])
    return f"edited-{base or 'image'}.{result.payload.extension}"


def generated_filename(result: GeneratedResult) -> str:
    safe_prompt = re.sub(r"[^a-z0-9]", "_", result.prompt[:PROMPT_PREFIX_LENGTH], flags=re.IGNORECASE)
    return f"generated-{safe_prompt.lower() or 'image'}.jpg"
