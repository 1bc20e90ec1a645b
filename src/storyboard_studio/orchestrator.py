from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable

from storyboard_studio.composition import (
    CompositionInputs,
    assemble_parts,
    build_asset_prompt,
    continuation_parts,
    regeneration_parts,
)
from storyboard_studio.errors import (
    ApiNotConfigured,
    EntityNotFound,
    GenerationFailed,
    GenerationInProgress,
    StoryboardError,
)
from storyboard_studio.images import to_data_url
from storyboard_studio.models import Asset, AssetCreationForm, AssetOrigin, ResultScene
from storyboard_studio.modes import CompositionMode
from storyboard_studio.providers.base import GeneratedImage, ImageGenerator
from storyboard_studio.selection import SelectionTracker
from storyboard_studio.storage import EntityStore

logger = logging.getLogger(__name__)

LABEL_CREATE_ASSET = "Creating a new asset..."
LABEL_REGENERATE_ASSET = "Regenerating asset..."
LABEL_CONTINUE_SCENE = "Continuing the scene..."
LABEL_GENERATE_SCENE = "Composing your scene..."


@dataclass(frozen=True)
class GenerationStatus:
    busy: bool = False
    label: str = ""


IDLE = GenerationStatus()


class GenerationOrchestrator:
    """Runs one generation request at a time and applies its result to the stores.

    A second request while one is in flight is rejected with
    ``GenerationInProgress``. Whatever happens, the status goes back to idle.
    """

    def __init__(
        self,
        entities: EntityStore,
        selection: SelectionTracker,
        generator: ImageGenerator | None = None,
    ) -> None:
        self.entities = entities
        self.selection = selection
        self.generator = generator
        self.status = IDLE

    @property
    def is_configured(self) -> bool:
        return self.generator is not None

    @property
    def busy(self) -> bool:
        return self.status.busy

    def set_generator(self, generator: ImageGenerator | None) -> None:
        self.generator = generator

    async def create_asset(self, form: AssetCreationForm) -> Asset | None:
        if not form.description.strip():
            return None
        prompt = build_asset_prompt(form)
        async with self._busy(LABEL_CREATE_ASSET) as generator:
            image = await self._call(generator.generate_single_image(prompt))
            asset = self.entities.add_asset(_as_src(image), AssetOrigin.GENERATED, prompt=prompt)
        logger.info("Created asset %s (%s)", asset.id, form.category.value)
        return asset

    async def regenerate_asset(self, asset_id: str, instruction: str) -> Asset | None:
        if not instruction.strip():
            return None
        asset = self.entities.get_asset(asset_id)
        if asset is None:
            raise EntityNotFound("asset", asset_id)
        async with self._busy(LABEL_REGENERATE_ASSET) as generator:
            parts = regeneration_parts(asset, instruction)
            image = await self._call(generator.generate_from_parts(parts))
            updated = self.entities.update_asset_image(asset_id, _as_src(image))
        logger.info("Regenerated asset %s", asset_id)
        return updated

    async def continue_result(self, result_id: str, instruction: str) -> ResultScene:
        result = self.entities.get_result(result_id)
        if result is None:
            raise EntityNotFound("result", result_id)
        async with self._busy(LABEL_CONTINUE_SCENE) as generator:
            parts = continuation_parts(result, instruction)
            image = await self._call(generator.generate_from_parts(parts))
            scene = self.entities.add_result(_as_src(image))
        logger.info("Continued result %s as %s", result_id, scene.id)
        return scene

    async def generate_scene(self, prompt: str) -> ResultScene | None:
        """Compose a new result from the current selection.

        Returns ``None`` without calling the model when there is nothing to
        send. Selection is cleared only on success so a failed attempt can be
        retried as-is.
        """
        mode = self.selection.mode
        if not prompt or mode is CompositionMode.IDLE:
            return None
        async with self._busy(LABEL_GENERATE_SCENE) as generator:
            parts = assemble_parts(mode, self._inputs(prompt))
            if not parts:
                logger.info("Nothing to send for mode %s", mode.value)
                return None
            image = await self._call(generator.generate_from_parts(parts))
            scene = self.entities.add_result(_as_src(image))
            self.selection.clear_all()
        logger.info("Generated scene %s in mode %s", scene.id, mode.value)
        return scene

    def _inputs(self, prompt: str) -> CompositionInputs:
        state = self.selection.state
        assets = [a for a in (self.entities.get_asset(i) for i in state.asset_ids) if a is not None]
        product = self.entities.get_product(state.product_id) if state.product_id else None
        result = self.entities.get_result(state.result_id) if state.result_id else None
        return CompositionInputs(prompt=prompt, assets=assets, product=product, result=result)

    @asynccontextmanager
    async def _busy(self, label: str) -> AsyncIterator[ImageGenerator]:
        generator = self.generator
        if generator is None:
            raise ApiNotConfigured()
        if self.status.busy:
            raise GenerationInProgress(self.status.label)
        self.status = GenerationStatus(busy=True, label=label)
        logger.info(label)
        try:
            yield generator
        finally:
            self.status = IDLE

    async def _call(self, request: Awaitable[GeneratedImage | None]) -> GeneratedImage:
        try:
            image = await request
        except StoryboardError:
            raise
        except Exception as exc:
            logger.exception("Image generation call failed")
            raise GenerationFailed(f"image generation failed: {exc}") from exc
        if image is None or not image.data:
            raise GenerationFailed("the model returned no image")
        return image


def _as_src(image: GeneratedImage) -> str:
    return to_data_url(image.data, image.mime_type)
