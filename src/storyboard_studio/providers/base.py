from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, Union


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str


# One unit of a multi-part request: image bytes or an instruction string.
Part = Union[ImagePart, str]


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str
    provider: str
    model: str


class ImageGenerator(Protocol):
    """Single-shot image generation.

    Returns ``None`` when the service is unreachable, rejects the input or
    produces no image.
    """

    name: str

    async def generate_single_image(self, prompt: str) -> GeneratedImage | None: ...

    async def generate_from_parts(self, parts: Sequence[Part]) -> GeneratedImage | None: ...
