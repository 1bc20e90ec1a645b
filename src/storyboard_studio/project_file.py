from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from storyboard_studio.errors import (
    ConfirmationRequired,
    GenerationInProgress,
    ImportParseError,
    ImportRejected,
    InvalidImageData,
)
from storyboard_studio.images import parse_data_url
from storyboard_studio.models import Asset, Product, ResultScene
from storyboard_studio.orchestrator import GenerationOrchestrator
from storyboard_studio.selection import SelectionTracker
from storyboard_studio.storage import EntityStore

logger = logging.getLogger(__name__)

PROJECT_VERSION = 1


@dataclass(frozen=True)
class ProjectDocument:
    version: int = PROJECT_VERSION
    assets: list[Asset] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    results: list[ResultScene] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assets": [a.to_dict() for a in self.assets],
            "products": [p.to_dict() for p in self.products],
            "results": [r.to_dict() for r in self.results],
            "version": self.version,
        }


def dump_project(doc: ProjectDocument) -> bytes:
    return json.dumps(doc.to_dict(), indent=2).encode("utf-8")


def parse_project(raw: bytes | str) -> ProjectDocument:
    """Parse an exported project file. Anything but a complete version-1 document is rejected."""
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ImportParseError(f"project file is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ImportRejected("project file must contain a JSON object")
    version = data.get("version")
    if type(version) is not int or version != PROJECT_VERSION:
        raise ImportRejected(f"unsupported project version: {version!r}")
    for key in ("assets", "products", "results"):
        if not isinstance(data.get(key), list):
            raise ImportRejected(f"project file is missing the '{key}' list")

    try:
        doc = ProjectDocument(
            version=version,
            assets=[Asset.from_dict(a) for a in data["assets"]],
            products=[Product.from_dict(p) for p in data["products"]],
            results=[ResultScene.from_dict(r) for r in data["results"]],
        )
        for entity in [*doc.assets, *doc.products, *doc.results]:
            parse_data_url(entity.src)
    except (ValueError, TypeError) as exc:
        raise ImportRejected(f"project file has an invalid entry: {exc}") from exc
    except InvalidImageData as exc:
        raise ImportRejected(f"project file has an invalid image: {exc}") from exc
    return doc


class ProjectSerializer:
    def __init__(
        self,
        entities: EntityStore,
        selection: SelectionTracker,
        orchestrator: GenerationOrchestrator | None = None,
    ) -> None:
        self.entities = entities
        self.selection = selection
        self.orchestrator = orchestrator

    def snapshot(self) -> ProjectDocument:
        return ProjectDocument(
            assets=self.entities.assets,
            products=self.entities.products,
            results=self.entities.results,
        )

    def save(self) -> bytes:
        return dump_project(self.snapshot())

    def load(self, raw: bytes | str) -> ProjectDocument:
        self._ensure_idle()
        try:
            doc = parse_project(raw)
        except (ImportParseError, ImportRejected) as exc:
            logger.warning("Rejected project import: %s", exc)
            raise
        self.entities.replace_all(doc.assets, doc.products, doc.results)
        self.selection.retain(
            [a.id for a in doc.assets] + [p.id for p in doc.products] + [r.id for r in doc.results]
        )
        logger.info(
            "Loaded project: %d assets, %d products, %d results",
            len(doc.assets),
            len(doc.products),
            len(doc.results),
        )
        return doc

    def new_project(self, confirmed: bool) -> None:
        self._ensure_idle()
        if not confirmed:
            raise ConfirmationRequired("starting a new project discards all unsaved work; confirm to continue")
        self.entities.clear()
        self.selection.clear_all()
        logger.info("Started a new project")

    def _ensure_idle(self) -> None:
        # A generation finishing after a reset would write into the new project.
        if self.orchestrator is not None and self.orchestrator.busy:
            raise GenerationInProgress(self.orchestrator.status.label)
