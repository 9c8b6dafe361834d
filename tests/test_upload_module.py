import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from upload_module import (
    NO_IMAGE_MESSAGE,
    UploadValidationError,
    build_analysis_request,
    resolve_mime_type,
)


def make_upload(data=b"\xff\xd8\xff", filename="scan.jpg", content_type="image/jpeg"):
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=headers)


@pytest.mark.asyncio
async def test_build_request_packages_fields():
    request = await build_analysis_request(make_upload(), "What is this?")
    assert request.query == "What is this?"
    assert request.image.data == b"\xff\xd8\xff"
    assert request.image.mime_type == "image/jpeg"
    assert request.image.filename == "scan.jpg"


@pytest.mark.asyncio
async def test_missing_query_defaults_to_empty():
    request = await build_analysis_request(make_upload(), None)
    assert request.query == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "upload",
    [None, make_upload(filename=""), make_upload(data=b"")],
    ids=["absent", "no-filename", "zero-bytes"],
)
async def test_missing_image_raises(upload):
    with pytest.raises(UploadValidationError) as exc_info:
        await build_analysis_request(upload, "test")
    assert exc_info.value.message == NO_IMAGE_MESSAGE


@pytest.mark.asyncio
async def test_size_limit():
    with pytest.raises(UploadValidationError, match="maximum upload size of 2 bytes"):
        await build_analysis_request(make_upload(data=b"abc"), "q", max_bytes=2)

    request = await build_analysis_request(make_upload(data=b"ab"), "q", max_bytes=2)
    assert request.image.data == b"ab"


def test_resolve_mime_type_falls_back():
    assert resolve_mime_type("image/webp", "a.jpg") == "image/webp"
    assert resolve_mime_type(None, "a.png") == "image/png"
    assert resolve_mime_type(None, "blob") == "application/octet-stream"
