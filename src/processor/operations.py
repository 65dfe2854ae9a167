"""
이미지 후처리 함수: 중앙 크롭 → 긴 변 기준 리사이즈 → 재인코딩.
기하 계산은 float로 하고, 출력 픽셀 크기만 정수로 반올림한다.
모든 공개 함수는 Payload를 받아서 Payload를 반환한다 (CPU-bound, 동기).
"""

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from core.exceptions import TransformFailed
from model.image import ImageFormat, Payload
from model.preference import ORIGINAL, parse_aspect_ratio

LOSSY_QUALITY = 92

# 반올림 오차로 생기는 0.5px 미만의 크롭은 크롭이 아닌 것으로 본다
_FULL_FRAME_EPSILON = 0.5


@dataclass(frozen=True)
class Geometry:
    box: tuple[float, float, float, float]  # 원본 좌표계의 (left, top, right, bottom)
    size: tuple[int, int]  # 출력 (width, height)

    @property
    def crop_width(self) -> float:
        return self.box[2] - self.box[0]

    @property
    def crop_height(self) -> float:
        return self.box[3] - self.box[1]

    def is_identity(self, source_size: tuple[int, int]) -> bool:
        width, height = source_size
        full_frame = (
            abs(self.crop_width - width) < _FULL_FRAME_EPSILON
            and abs(self.crop_height - height) < _FULL_FRAME_EPSILON
        )
        return full_frame and self.size == (width, height)


def crop_box(width: int, height: int, aspect_ratio: float | None) -> tuple[float, float, float, float]:
    """목표 비율에 맞는 중앙 크롭 영역. 비율이 없으면 전체 영역."""
    if aspect_ratio is None:
        return (0.0, 0.0, float(width), float(height))

    current = width / height
    if aspect_ratio > current:
        # 목표가 더 넓다 → 세로를 잘라낸다
        new_height = width / aspect_ratio
        top = (height - new_height) / 2
        return (0.0, top, float(width), top + new_height)

    new_width = height * aspect_ratio
    left = (width - new_width) / 2
    return (left, 0.0, left + new_width, float(height))


def output_size(crop_width: float, crop_height: float, longest_edge: int | None) -> tuple[int, int]:
    """긴 변을 longest_edge로 맞추고 짧은 변은 같은 배율로 줄인다."""
    width, height = crop_width, crop_height
    if longest_edge and longest_edge > 0:
        if width > height:
            height = height / width * longest_edge
            width = longest_edge
        else:
            width = width / height * longest_edge
            height = longest_edge
    return max(1, round(width)), max(1, round(height))


def plan_geometry(
    width: int, height: int, aspect_ratio: float | None, longest_edge: int | None
) -> Geometry:
    box = crop_box(width, height, aspect_ratio)
    return Geometry(box=box, size=output_size(box[2] - box[0], box[3] - box[1], longest_edge))


def render(image: Image.Image, geometry: Geometry, fmt: ImageFormat) -> Image.Image:
    """크롭 영역을 출력 크기의 캔버스에 그린다."""
    has_alpha = image.mode in ("RGBA", "LA") or "transparency" in image.info
    working = image.convert("RGBA" if has_alpha else "RGB")
    result = working.resize(geometry.size, Image.LANCZOS, box=geometry.box)

    if fmt is ImageFormat.JPG and result.mode == "RGBA":
        # JPEG는 알파 채널이 없으므로 흰 배경에 합성
        flattened = Image.new("RGB", result.size, (255, 255, 255))
        flattened.paste(result, mask=result.getchannel("A"))
        return flattened
    return result


def encode(image: Image.Image, fmt: ImageFormat, dpi: int | None = None) -> Payload:
    options: dict = {}
    if fmt.lossy:
        options["quality"] = LOSSY_QUALITY
    if dpi and fmt in (ImageFormat.JPG, ImageFormat.PNG):
        options["dpi"] = (dpi, dpi)

    buffer = BytesIO()
    image.save(buffer, format=fmt.pil_format, **options)
    return Payload(data=buffer.getvalue(), mime_type=fmt.mime_type)


def transform(
    payload: Payload,
    aspect_ratio: str | None = ORIGINAL,
    longest_edge: int | None = None,
    fmt: ImageFormat = ImageFormat.JPG,
    dpi: int | None = None,
) -> Payload:
    """크롭/리사이즈/포맷 변환을 적용한다.

    바꿀 것이 없으면 디코딩 없이 원본을 그대로 돌려준다. 디코딩 후 계산한
    기하가 원본과 같고 포맷도 같을 때도 재인코딩하지 않는다 (같은 옵션으로
    두 번 변환해도 결과가 바이트 단위로 같다).
    """
    ratio = parse_aspect_ratio(aspect_ratio)
    if ratio is None and not longest_edge and payload.is_format(fmt):
        return payload

    try:
        with Image.open(BytesIO(payload.data)) as image:
            image.load()
            geometry = plan_geometry(image.width, image.height, ratio, longest_edge)
            if geometry.is_identity(image.size) and payload.is_format(fmt):
                return payload
            rendered = render(image, geometry, fmt)
        return encode(rendered, fmt, dpi)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise TransformFailed(f"Could not process image ({payload.mime_type}): {e}") from e

