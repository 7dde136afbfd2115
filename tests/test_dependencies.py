import asyncio

import pytest
from starlette.requests import Request

from kyc_backend.api.dependencies import read_uploaded_image
from kyc_backend.core.errors import ValidationError


def streamed_request(chunks, headers=None):
    """Builds a request whose body arrives as `chunks`, counting how many were pulled."""
    pulled = []

    async def receive():
        index = len(pulled)
        pulled.append(index)
        if index >= len(chunks):
            return {"type": "http.disconnect"}
        return {"type": "http.request", "body": chunks[index], "more_body": index < len(chunks) - 1}

    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {"Content-Type": "image/jpeg"}).items()]
    scope = {"type": "http", "method": "POST", "path": "/detectFace", "headers": raw_headers, "query_string": b""}
    return Request(scope, receive), pulled


def test_stops_reading_once_over_the_limit(settings):
    settings.MAX_UPLOAD_BYTES = 10
    request, pulled = streamed_request([b"x" * 6, b"x" * 6, b"x" * 6, b"x" * 6])

    with pytest.raises(ValidationError, match="too large"):
        asyncio.run(read_uploaded_image(request, settings))
    assert len(pulled) == 2


def test_declared_length_refused_before_reading(settings):
    settings.MAX_UPLOAD_BYTES = 10
    request, pulled = streamed_request([b"x" * 4], headers={"Content-Type": "image/png", "Content-Length": "11"})

    with pytest.raises(ValidationError):
        asyncio.run(read_uploaded_image(request, settings))
    assert pulled == []


def test_joins_chunks_within_the_limit(settings):
    settings.MAX_UPLOAD_BYTES = 10
    request, _ = streamed_request([b"abc", b"def"], headers={"Content-Type": "image/png"})

    image = asyncio.run(read_uploaded_image(request, settings))
    assert image.content == b"abcdef"
    assert image.media_type == "image/png"
