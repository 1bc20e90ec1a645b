from __future__ import annotations

import logging
from typing import Any, Callable

from storyboard_studio.config import settings
from storyboard_studio.errors import EntityNotFound
from storyboard_studio.images import upload_to_data_url
from storyboard_studio.models import Asset, AssetOrigin, Product, ResultScene
from storyboard_studio.modes import MODE_DISPLAY
from storyboard_studio.orchestrator import GenerationOrchestrator
from storyboard_studio.project_file import ProjectSerializer
from storyboard_studio.providers.base import ImageGenerator
from storyboard_studio.selection import SelectionState, SelectionTracker
from storyboard_studio.storage import API_KEY_KEY, EntityStore, KeyValueStore

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[[str], ImageGenerator]


def _gemini_factory(api_key: str) -> ImageGenerator:
    from storyboard_studio.providers.gemini_provider import GeminiProvider

    return GeminiProvider(api_key=api_key)


class StoryboardEditor:
    """One user's editing session: stores, selection, generation and project files."""

    def __init__(self, kv: KeyValueStore, generator_factory: GeneratorFactory = _gemini_factory) -> None:
        self.kv = kv
        self.entities = EntityStore(kv)
        self.selection = SelectionTracker()
        self.orchestrator = GenerationOrchestrator(self.entities, self.selection)
        self.projects = ProjectSerializer(self.entities, self.selection, self.orchestrator)
        self._generator_factory = generator_factory
        self._configure(self.api_key)

    @property
    def api_key(self) -> str:
        stored = self.kv.get_json(API_KEY_KEY, "")
        return (stored if isinstance(stored, str) else "") or settings.gemini_api_key or ""

    def set_api_key(self, api_key: str) -> bool:
        api_key = api_key.strip()
        self.kv.set_json(API_KEY_KEY, api_key)
        return self._configure(self.api_key)

    def _configure(self, api_key: str) -> bool:
        generator: ImageGenerator | None = None
        if api_key:
            try:
                generator = self._generator_factory(api_key)
            except Exception:
                logger.exception("Failed to initialize the image generator; check the API key")
        self.orchestrator.set_generator(generator)
        return generator is not None

    def upload_asset(self, content: bytes) -> Asset:
        return self.entities.add_asset(upload_to_data_url(content), AssetOrigin.UPLOADED)

    def upload_product(self, content: bytes) -> Product:
        return self.entities.add_product(upload_to_data_url(content))

    def delete_asset(self, asset_id: str) -> bool:
        removed = self.entities.delete_asset(asset_id)
        self.selection.forget(asset_id)
        return removed

    def delete_product(self, product_id: str) -> bool:
        removed = self.entities.delete_product(product_id)
        self.selection.forget(product_id)
        return removed

    def delete_result(self, result_id: str) -> bool:
        removed = self.entities.delete_result(result_id)
        self.selection.forget(result_id)
        return removed

    def toggle_asset(self, asset_id: str) -> SelectionState:
        if self.entities.get_asset(asset_id) is None:
            raise EntityNotFound("asset", asset_id)
        return self.selection.toggle_asset(asset_id)

    def select_product(self, product_id: str) -> SelectionState:
        if self.entities.get_product(product_id) is None:
            raise EntityNotFound("product", product_id)
        return self.selection.select_product(product_id)

    def select_result(self, result_id: str) -> SelectionState:
        if self.entities.get_result(result_id) is None:
            raise EntityNotFound("result", result_id)
        return self.selection.select_result(result_id)

    def find_image(self, kind: str, entity_id: str) -> Asset | Product | ResultScene:
        lookup = {
            "assets": self.entities.get_asset,
            "products": self.entities.get_product,
            "results": self.entities.get_result,
        }.get(kind)
        entity = lookup(entity_id) if lookup else None
        if entity is None:
            raise EntityNotFound(kind.rstrip("s") or "entity", entity_id)
        return entity

    def to_dict(self) -> dict[str, Any]:
        state = self.selection.state
        mode = self.selection.mode
        display = MODE_DISPLAY[mode]
        status = self.orchestrator.status
        return {
            "assets": [a.to_dict() | {"regenerable": a.regenerable} for a in self.entities.assets],
            "products": [p.to_dict() for p in self.entities.products],
            "results": [r.to_dict() for r in self.entities.results],
            "selection": {
                "asset_ids": list(state.asset_ids),
                "product_id": state.product_id,
                "result_id": state.result_id,
            },
            "mode": {
                "value": mode.value,
                "title": display.title,
                "placeholder": display.placeholder,
                "action_label": display.action_label,
            },
            "status": {"busy": status.busy, "label": status.label},
            "api_configured": self.orchestrator.is_configured,
        }
