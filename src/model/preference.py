"""출력 설정 (크롭 비율, 해상도, 밀도, 포맷).

프로세스 전역 값이며 키-값 테이블에 문자열로 저장된다.
시작 시 한 번 읽고, 필드가 바뀔 때마다 다시 쓴다.
"""

import re

from pydantic import BaseModel, ValidationError, field_validator
from sqlmodel import Field, SQLModel

from core.exceptions import InvalidPreference
from model.image import ImageFormat

ORIGINAL = "original"

# 필드명 → 저장소 키
STORAGE_KEYS = {
    "crop_aspect_ratio": "cropAspectRatio",
    "resolution": "resolution",
    "ppi": "ppi",
    "output_format": "outputFormat",
}

_RATIO_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")


class PreferenceEntry(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str


def parse_aspect_ratio(value: str | None) -> float | None:
    """'w:h' → w/h. 'original'이나 빈 값이면 None."""
    if not value or value == ORIGINAL:
        return None
    match = _RATIO_RE.match(value)
    if not match:
        raise InvalidPreference(f"Invalid aspect ratio: {value!r}")
    w, h = float(match.group(1)), float(match.group(2))
    if w <= 0 or h <= 0:
        raise InvalidPreference(f"Invalid aspect ratio: {value!r}")
    return w / h


class OutputPreferences(BaseModel):
    crop_aspect_ratio: str = ORIGINAL
    resolution: str = ORIGINAL
    ppi: str = "300"
    output_format: ImageFormat = ImageFormat.JPG

    model_config = {"frozen": True}

    @field_validator("crop_aspect_ratio")
    @classmethod
    def _check_ratio(cls, v: str) -> str:
        try:
            parse_aspect_ratio(v)
        except InvalidPreference as e:
            raise ValueError(e.message) from e
        return v

    @field_validator("resolution")
    @classmethod
    def _check_resolution(cls, v: str) -> str:
        if v != ORIGINAL and (not v.isdigit() or int(v) <= 0):
            raise ValueError(f"resolution must be 'original' or a positive integer, got {v!r}")
        return v

    @field_validator("ppi")
    @classmethod
    def _check_ppi(cls, v: str) -> str:
        if not v.isdigit() or int(v) <= 0:
            raise ValueError(f"ppi must be a positive integer, got {v!r}")
        return v

    @property
    def longest_edge(self) -> int | None:
        return None if self.resolution == ORIGINAL else int(self.resolution)

    @property
    def dpi(self) -> int:
        return int(self.ppi)

    def updated(self, **changes) -> "OutputPreferences":
        """변경 사항을 검증한 새 인스턴스를 반환한다."""
        unknown = set(changes) - set(STORAGE_KEYS)
        if unknown:
            raise InvalidPreference(f"Unknown setting: {', '.join(sorted(unknown))}")
        try:
            return OutputPreferences(**{**self.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidPreference(_first_error(e)) from e

    def to_storage(self) -> dict[str, str]:
        dumped = self.model_dump(mode="json")
        return {STORAGE_KEYS[name]: str(value) for name, value in dumped.items()}


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    return str(err.get("ctx", {}).get("error") or err["msg"])
