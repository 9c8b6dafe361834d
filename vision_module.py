"""Vision module (image analysis).

Forwards the uploaded image and the caller's question to a vision-capable chat
model through the OpenAI SDK. By default the client points at Google AI
Studio's OpenAI-compatible endpoint so requests are served by Gemini.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from openai import AsyncOpenAI, OpenAIError

from config import Settings
from upload_module import AnalysisRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceSuccess:
    content: str


@dataclass(frozen=True)
class InferenceFailure:
    message: str


InferenceOutcome = Union[InferenceSuccess, InferenceFailure]


def encode_image(data: bytes, mime_type: str) -> str:
    """Return the image as a base64 ``data:`` URL for inline attachment."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_prompt(template: str, query: str) -> str:
    return template.format(query=query)


def extract_text(response: Any) -> Optional[str]:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, str) and content.strip():
        return content
    return None


class VisionGateway:
    """Single-shot gateway to the external generative model.

    One request, one response: no streaming, no conversation memory, no
    caching. Retries are whatever ``max_retries`` the client was built with,
    which defaults to zero.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        prompt_template: str,
        provider_name: str = "Google AI Studio",
    ):
        self.client = client
        self.model = model
        self.prompt_template = prompt_template
        self.provider_name = provider_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "VisionGateway":
        client = AsyncOpenAI(
            api_key=settings.require_api_key(),
            base_url=settings.provider_base_url,
            timeout=settings.provider_timeout,
            max_retries=settings.provider_max_retries,
        )
        return cls(
            client=client,
            model=settings.model_name,
            prompt_template=settings.prompt_template,
            provider_name=settings.provider_name,
        )

    def build_messages(self, request: AnalysisRequest) -> list:
        image = request.image
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_prompt(self.prompt_template, request.query)},
                    {
                        "type": "image_url",
                        "image_url": {"url": encode_image(image.data, image.mime_type)},
                    },
                ],
            }
        ]

    async def analyze(self, request: AnalysisRequest) -> InferenceOutcome:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(request),
            )
        except OpenAIError as e:
            logger.warning("Provider call failed for %s: %s", request.image.filename, e)
            return InferenceFailure(message=str(e))

        text = extract_text(response)
        if not text:
            logger.warning("Empty response from %s for %s", self.provider_name, request.image.filename)
            return InferenceFailure(message=f"Empty response from {self.provider_name} API")
        return InferenceSuccess(content=text)
