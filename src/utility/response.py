from urllib.parse import quote

from fastapi.responses import Response


def content_disposition(filename: str, disposition: str = "attachment") -> str:
    """Starlette FileResponse와 같은 규칙으로 Content-Disposition 값을 만든다.

    헤더는 latin-1로 인코딩되므로 ASCII가 아니거나 따옴표 등이 섞인 이름은
    RFC 5987 `filename*=utf-8''...` 형식으로 보낸다.
    """
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


def attachment(data: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )
