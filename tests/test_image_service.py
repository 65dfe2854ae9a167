"""업로드 변환과 다운로드 파일명 테스트."""

import asyncio
from types import SimpleNamespace

import pytest

from core.exceptions import TransformFailed
from model.image import GeneratedResult, Payload, ProcessedResult, SourceImage
from service.image_service import edited_filename, generated_filename, ingest_files


def _upload(filename, content_type, data=b"bytes"):
    async def read():
        return data

    return SimpleNamespace(filename=filename, content_type=content_type, read=read)


def _ingest(uploads):
    return asyncio.run(ingest_files(uploads))


def test_ingest_drops_non_images():
    images = _ingest(
        [
            _upload("cat.png", "image/png", b"cat"),
            _upload("notes.txt", "text/plain"),
            _upload("dog.webp", "image/webp", b"dog"),
        ]
    )

    assert [i.filename for i in images] == ["cat.png", "dog.webp"]
    assert images[0].payload == Payload(data=b"cat", mime_type="image/png")


def test_ingest_guesses_missing_content_type():
    images = _ingest([_upload("photo.jpg", None), _upload("blob", "application/octet-stream")])

    assert len(images) == 1
    assert images[0].payload.mime_type == "image/jpeg"


def test_ingest_ids_are_unique():
    images = _ingest([_upload("same.png", "image/png") for _ in range(5)])

    assert len({i.id for i in images}) == 5
    assert all(i.id.startswith("same.png-") for i in images)


@pytest.mark.parametrize(
    "filename,mime,expected",
    [
        ("holiday.photo.jpg", "image/png", "edited-holiday.photo.png"),
        ("portrait.jpeg", "image/jpeg", "edited-portrait.jpeg"),
        ("noext", "image/webp", "edited-image.webp"),
    ],
)
def test_edited_filename(filename, mime, expected):
    source = SourceImage(id="x", filename=filename, payload=Payload(b"", "image/jpeg"))
    result = ProcessedResult(original_id="x", payload=Payload(b"", mime))

    assert edited_filename(result, source) == expected


def test_generated_filename_sanitizes_prompt():
    result = GeneratedResult(payload=Payload(b"", "image/jpeg"), prompt="An Astronaut, reading on the Moon (Van Gogh)")

    assert generated_filename(result) == "generated-an_astronaut__reading_on_the_m.jpg"


def test_generated_filename_fallback():
    assert generated_filename(GeneratedResult(payload=Payload(b"", "image/jpeg"), prompt="")) == "generated-image.jpg"


def test_data_url_round_trip():
    payload = Payload.from_data_url("data:image/png;base64,aGVsbG8=")

    assert payload == Payload(data=b"hello", mime_type="image/png")
    assert payload.to_data_url() == "data:image/png;base64,aGVsbG8="


def test_data_url_rejects_garbage():
    with pytest.raises(TransformFailed):
        Payload.from_data_url("hello")
