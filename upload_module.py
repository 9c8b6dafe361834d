"""Upload handling for image analysis requests.

Turns the multipart ``image`` + ``query`` fields into a typed request that the
vision gateway can consume. Nothing here talks to the provider.
"""
import logging
import mimetypes
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "application/octet-stream"
NO_IMAGE_MESSAGE = "No image uploaded"


class UploadValidationError(Exception):
    """Request rejected before any provider call."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AnalysisRequest:
    image: UploadedImage
    query: str = ""


def resolve_mime_type(content_type: Optional[str], filename: str) -> str:
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or FALLBACK_MIME_TYPE


async def read_upload(upload: UploadFile, max_bytes: int = 0) -> bytes:
    # Read one byte past the limit so oversize uploads are detected without buffering them whole
    if max_bytes > 0:
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise UploadValidationError(
                f"Image exceeds maximum upload size of {max_bytes} bytes"
            )
        return data
    return await upload.read()


async def build_analysis_request(
    image: Optional[UploadFile],
    query: Optional[str],
    max_bytes: int = 0,
) -> AnalysisRequest:
    """Validate the multipart fields and package them for the gateway.

    The image is optional at the transport level but mandatory here: an absent
    field, an empty filename (browser "no file chosen") or a zero-byte body are
    all rejected with :class:`UploadValidationError`.
    """
    if image is None or not image.filename:
        raise UploadValidationError(NO_IMAGE_MESSAGE)

    try:
        data = await read_upload(image, max_bytes)
    finally:
        await image.close()

    if not data:
        raise UploadValidationError(NO_IMAGE_MESSAGE)

    uploaded = UploadedImage(
        data=data,
        mime_type=resolve_mime_type(image.content_type, image.filename),
        filename=image.filename,
    )
    logger.info(
        "Received image %s (%s, %d bytes)", uploaded.filename, uploaded.mime_type, uploaded.size
    )
    return AnalysisRequest(image=uploaded, query=query or "")
