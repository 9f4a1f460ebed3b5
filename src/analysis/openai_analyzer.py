# src/analysis/openai_analyzer.py — v1
"""OpenAI vision adapter implementing BaseImageAnalyzer.

Sends the optimized JPEG as a data URL alongside a product-description prompt
and returns the model's text answer.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from imagematch.analysis.base_analyzer import AnalysisError, BaseImageAnalyzer
from imagematch.analysis.models import ImageInput
from imagematch.analysis.retry import NO_RETRY, with_retry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a product cataloguing expert. Describe product photos with the "
    "precise visual characteristics needed to recognise identical or nearly "
    "identical items."
)

DESCRIBE_PROMPT = """Describe this product in DETAIL:
1. Product type
2. Main material and finish (colour, metal, texture)
3. Stones, inlays or accents, if any (colour, shape, approximate size)
4. Overall design (shape, style, textures)
5. Distinctive elements (engravings, unique details, signatures)
6. Patterns or repetitions in the design
7. Any other unique visual characteristic

Be technical and exhaustive (maximum 300 words). Focus on characteristics that
would be the same in two photos of the same item."""


class OpenAIImageAnalyzer(BaseImageAnalyzer):
    """Image descriptions via the OpenAI chat completions API."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        max_tokens: int = 500,
        prompt: str = DESCRIBE_PROMPT,
        retry: bool = True,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._prompt = prompt
        self._retry = retry
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    async def describe(self, image: ImageInput) -> str:
        return await with_retry(
            self._describe_once,
            image,
            operation=f"describe {image.source_id or 'image'}",
            retry_configs=None if self._retry else NO_RETRY,
        )

    async def _describe_once(self, image: ImageInput) -> str:
        b64 = base64.b64encode(image.data).decode()
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self._prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{image.media_type};base64,{b64}"},
                    },
                ],
            },
        ]

        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(
            model=self._model, messages=messages, max_tokens=self._max_tokens,
        )
        latency = int((time.monotonic() - t0) * 1000)

        content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not content:
            raise AnalysisError(
                f"Empty description from {self._model} for {image.source_id}"
            )
        logger.debug(
            "Described %s with %s in %dms (%d chars)",
            image.source_id, self._model, latency, len(content),
        )
        return content

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
