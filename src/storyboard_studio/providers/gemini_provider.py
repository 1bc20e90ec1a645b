from __future__ import annotations

import logging
from typing import Any, Sequence

from storyboard_studio.config import settings
from storyboard_studio.providers.base import GeneratedImage, ImagePart, Part

logger = logging.getLogger(__name__)


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        image_model: str | None = None,
        compose_model: str | None = None,
    ) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)
        self.image_model = image_model or settings.gemini_image_model
        self.compose_model = compose_model or settings.gemini_compose_model

    async def generate_single_image(self, prompt: str) -> GeneratedImage | None:
        """Text-to-image through an Imagen model. One image, square, JPEG by default."""
        from google.genai import types  # type: ignore

        mime_type = settings.asset_output_mime_type
        try:
            resp = await self.client.aio.models.generate_images(
                model=self.image_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type=mime_type,
                    aspect_ratio=settings.asset_aspect_ratio,
                ),
            )
        except Exception:
            logger.exception("Imagen request failed (%s)", self.image_model)
            return None
        for gi in getattr(resp, "generated_images", []) or []:
            img_bytes = getattr(getattr(gi, "image", None), "image_bytes", None)
            if not img_bytes:
                continue
            return GeneratedImage(data=img_bytes, mime_type=mime_type, provider=self.name, model=self.image_model)
        logger.warning("Imagen returned no image for prompt of %d chars", len(prompt))
        return None

    async def generate_from_parts(self, parts: Sequence[Part]) -> GeneratedImage | None:
        """
        Multimodal edit/compose: images and instructions go in the given order,
        and only an image is requested back.
        """
        from google.genai import types  # type: ignore

        contents = [_to_genai_part(types, p) for p in parts]
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.compose_model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except Exception:
            logger.exception("Compose request failed (%s)", self.compose_model)
            return None
        extracted = _extract_images_from_generate_content(resp)
        if not extracted:
            logger.warning("%s returned no image for %d parts", self.compose_model, len(parts))
            return None
        data, mime_type = extracted[0]
        return GeneratedImage(data=data, mime_type=mime_type, provider=self.name, model=self.compose_model)


def _to_genai_part(types: Any, part: Part) -> Any:
    if isinstance(part, ImagePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    return types.Part.from_text(text=part)


def _extract_images_from_generate_content(resp: Any) -> list[tuple[bytes, str]]:
    out: list[tuple[bytes, str]] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or ""
            data = getattr(inline, "data", None)
            if not data:
                continue
            if mime and not mime.startswith("image/"):
                continue
            out.append((data, mime or "image/png"))
    return out
