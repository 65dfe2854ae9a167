"""원격 생성 이미지 모델 클라이언트.

세 가지 원격 작업을 감싼다:
- prompt_edit: 이미지 + 자유 텍스트 지시 → 편집된 이미지 (Gemini image 모델)
- remove_background: 이미지 + 고정 지시 → 배경이 투명한 PNG (같은 모델)
- generate_from_text: 텍스트 → 새 이미지 1장 (Imagen, JPEG 고정)

응답은 여러 part로 온다. 순서대로 훑어서 inline 이미지가 있는 첫 part만 쓴다.
실패는 모두 AppException 하나로 호출자에게 전달된다 (부분 결과 없음, 재시도 없음).
"""

from collections.abc import Iterable
from typing import Protocol

import httpx
from google import genai
from google.genai import errors, types
from loguru import logger

from core.config import settings
from core.exceptions import ConfigurationError, NoImageReturned, RemoteCallFailed
from model.image import Payload

BACKGROUND_REMOVAL_PROMPT = (
    "Please remove the background from this image. The main subject should be "
    "perfectly isolated. The new background must be transparent. "
    "Output the result as a PNG file."
)

GENERATION_MIME_TYPE = "image/jpeg"
GENERATION_ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")


class ImageEditClient(Protocol):
    async def prompt_edit(self, image: Payload, prompt: str) -> Payload: ...

    async def remove_background(self, image: Payload) -> Payload: ...

    async def generate_from_text(self, prompt: str, aspect_ratio: str) -> Payload: ...


def first_image_part(parts: Iterable[types.Part] | None) -> Payload | None:
    """inline 이미지를 가진 첫 part를 Payload로. 없으면 None."""
    for part in parts or ():
        blob = part.inline_data
        if blob is not None and blob.data:
            return Payload(data=blob.data, mime_type=blob.mime_type or "image/png")
    return None


def _response_parts(response: types.GenerateContentResponse) -> list[types.Part]:
    if not response.candidates:
        return []
    content = response.candidates[0].content
    return list(content.parts or []) if content else []


class GeminiEditClient:
    """google-genai 비동기 클라이언트로 원격 모델을 호출한다.

    API 키는 첫 호출 때 확인한다. 키가 없으면 그 호출만 ConfigurationError로 실패한다.
    genai.Client는 한 번 만들어 재사용하고, 종료 시 aclose()로 닫는다.
    """

    def __init__(
        self,
        api_key: str | None = None,
        edit_model: str | None = None,
        generation_model: str | None = None,
    ):
        self._api_key = api_key
        self.edit_model = edit_model or settings.EDIT_MODEL
        self.generation_model = generation_model or settings.GENERATION_MODEL
        self._genai: genai.Client | None = None

    def _client(self) -> genai.Client:
        if self._genai is None:
            api_key = self._api_key or settings.API_KEY
            if not api_key:
                raise ConfigurationError
            self._genai = genai.Client(api_key=api_key)
        return self._genai

    async def aclose(self) -> None:
        if self._genai is not None:
            await self._genai.aio.aclose()
            self._genai = None

    async def _edit(self, image: Payload, instruction: str) -> Payload | None:
        client = self._client()
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                    types.Part.from_text(text=instruction),
                ],
            )
        ]
        try:
            response = await client.aio.models.generate_content(
                model=self.edit_model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise RemoteCallFailed(f"Image edit request failed: {e}") from e
        return first_image_part(_response_parts(response))

    async def prompt_edit(self, image: Payload, prompt: str) -> Payload:
        result = await self._edit(image, prompt)
        if result is None:
            raise NoImageReturned
        return result

    async def remove_background(self, image: Payload) -> Payload:
        result = await self._edit(image, BACKGROUND_REMOVAL_PROMPT)
        if result is None:
            raise NoImageReturned("No image was returned by the API during background removal.")
        if result.mime_type != "image/png":
            # 투명도가 사라질 수 있지만 결과는 그대로 쓴다
            logger.warning(
                f"Background removal returned {result.mime_type} instead of PNG; "
                "transparency may be lost"
            )
        return result

    async def generate_from_text(self, prompt: str, aspect_ratio: str) -> Payload:
        client = self._client()
        try:
            response = await client.aio.models.generate_images(
                model=self.generation_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type=GENERATION_MIME_TYPE,
                    aspect_ratio=aspect_ratio,
                ),
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise RemoteCallFailed(f"Image generation request failed: {e}") from e

        generated = response.generated_images or []
        image = generated[0].image if generated else None
        if image is None or not image.image_bytes:
            raise NoImageReturned("No image was generated by the API.")
        return Payload(data=image.image_bytes, mime_type=GENERATION_MIME_TYPE)
