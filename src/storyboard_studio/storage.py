from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from storyboard_studio.config import settings
from storyboard_studio.errors import EntityNotFound
from storyboard_studio.models import Asset, AssetOrigin, Product, ResultScene, new_id

logger = logging.getLogger(__name__)

ASSETS_KEY = "sb-assets"
PRODUCTS_KEY = "sb-products"
RESULTS_KEY = "sb-results"
API_KEY_KEY = "gemini-api-key"

T = TypeVar("T")


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Return a copy of ``items`` with the element at ``from_index`` moved to ``to_index``."""
    n = len(items)
    if not (0 <= from_index < n) or not (0 <= to_index < n):
        raise IndexError(f"cannot move index {from_index} to {to_index} in a list of {n}")
    out = list(items)
    item = out.pop(from_index)
    out.insert(to_index, item)
    return out


class KeyValueStore:
    """Key -> JSON text pairs kept in a single file under ``data_dir``."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or Path(settings.data_dir) / settings.state_filename).resolve()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._data = self._read()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: dict[str, str]) -> None:
        # Read-modify-write of the whole file; writers must not interleave.
        with self._lock:
            updated = dict(self._data)
            updated.update(values)
            self._write(updated)
            self._data = updated

    def get_json(self, key: str, default: Any) -> Any:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Stored value for %s is not valid JSON; using default", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            loaded = json.loads(self.path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Could not read %s; starting with an empty store", self.path)
            return {}
        if not isinstance(loaded, dict):
            return {}
        return {k: v for k, v in loaded.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=self.path.name + ".",
            suffix=".tmp",
            delete=False,
        ) as f:
            json.dump(data, f, indent=2)
            tmp = Path(f.name)
        try:
            os.replace(tmp, self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise


class EntityStore:
    """The asset, product and result collections, persisted through a ``KeyValueStore``."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv
        self._assets: list[Asset] = self._load(ASSETS_KEY, Asset.from_dict)
        self._products: list[Product] = self._load(PRODUCTS_KEY, Product.from_dict)
        self._results: list[ResultScene] = self._load(RESULTS_KEY, ResultScene.from_dict)

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets)

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    @property
    def results(self) -> list[ResultScene]:
        return list(self._results)

    def get_asset(self, asset_id: str) -> Asset | None:
        return next((a for a in self._assets if a.id == asset_id), None)

    def get_product(self, product_id: str) -> Product | None:
        return next((p for p in self._products if p.id == product_id), None)

    def get_result(self, result_id: str) -> ResultScene | None:
        return next((r for r in self._results if r.id == result_id), None)

    def add_asset(self, src: str, origin: AssetOrigin, prompt: str | None = None) -> Asset:
        asset = Asset(id=new_id(), src=src, origin=origin, prompt=prompt)
        self._assets.append(asset)
        self._persist(ASSETS_KEY)
        return asset

    def add_product(self, src: str) -> Product:
        product = Product(id=new_id(), src=src)
        self._products.append(product)
        self._persist(PRODUCTS_KEY)
        return product

    def add_result(self, src: str) -> ResultScene:
        result = ResultScene(id=new_id(), src=src)
        self._results.append(result)
        self._persist(RESULTS_KEY)
        return result

    def update_asset_image(self, asset_id: str, src: str) -> Asset:
        for idx, a in enumerate(self._assets):
            if a.id == asset_id:
                updated = Asset(id=a.id, src=src, origin=a.origin, prompt=a.prompt)
                self._assets[idx] = updated
                self._persist(ASSETS_KEY)
                return updated
        raise EntityNotFound("asset", asset_id)

    def delete_asset(self, asset_id: str) -> bool:
        return self._delete(ASSETS_KEY, self._assets, asset_id)

    def delete_product(self, product_id: str) -> bool:
        return self._delete(PRODUCTS_KEY, self._products, product_id)

    def delete_result(self, result_id: str) -> bool:
        return self._delete(RESULTS_KEY, self._results, result_id)

    def move_result(self, from_index: int, to_index: int) -> list[ResultScene]:
        self._results = move_item(self._results, from_index, to_index)
        self._persist(RESULTS_KEY)
        return self.results

    def replace_all(
        self,
        assets: Sequence[Asset],
        products: Sequence[Product],
        results: Sequence[ResultScene],
    ) -> None:
        new_assets, new_products, new_results = list(assets), list(products), list(results)
        self.kv.set_many(
            {
                ASSETS_KEY: _dump(new_assets),
                PRODUCTS_KEY: _dump(new_products),
                RESULTS_KEY: _dump(new_results),
            }
        )
        self._assets, self._products, self._results = new_assets, new_products, new_results

    def clear(self) -> None:
        self.replace_all([], [], [])

    def _delete(self, key: str, items: list[Any], entity_id: str) -> bool:
        remaining = [item for item in items if item.id != entity_id]
        if len(remaining) == len(items):
            return False
        items[:] = remaining
        self._persist(key)
        return True

    def _persist(self, key: str) -> None:
        items = {ASSETS_KEY: self._assets, PRODUCTS_KEY: self._products, RESULTS_KEY: self._results}[key]
        self.kv.set(key, _dump(items))

    def _load(self, key: str, parse: Callable[[dict[str, Any]], T]) -> list[T]:
        raw = self.kv.get_json(key, [])
        if not isinstance(raw, list):
            logger.warning("Stored %s is not a list; starting empty", key)
            return []
        try:
            return [parse(item) for item in raw]
        except (ValueError, TypeError):
            logger.warning("Stored %s has malformed entries; starting empty", key, exc_info=True)
            return []


def _dump(items: Sequence[Any]) -> str:
    return json.dumps([item.to_dict() for item in items])
