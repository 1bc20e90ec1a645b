"""Tests for the key-value store and entity collections."""

import json
import threading

import pytest

from conftest import png_data_url
from storyboard_studio.errors import EntityNotFound
from storyboard_studio.models import AssetOrigin
from storyboard_studio.storage import (
    ASSETS_KEY,
    RESULTS_KEY,
    EntityStore,
    KeyValueStore,
    move_item,
)


class TestKeyValueStore:
    def test_missing_key_reads_default(self, kv):
        assert kv.get("nope") is None
        assert kv.get_json("nope", []) == []

    def test_values_survive_reopen(self, temp_dir):
        path = temp_dir / "state.json"
        KeyValueStore(path).set_json("k", {"a": 1})
        assert KeyValueStore(path).get_json("k", None) == {"a": 1}

    def test_corrupt_file_starts_empty(self, temp_dir):
        path = temp_dir / "state.json"
        path.write_text("{not json", encoding="utf-8")
        assert KeyValueStore(path).get("anything") is None

    def test_corrupt_value_reads_default(self, kv):
        kv.set("k", "{oops")
        assert kv.get_json("k", "fallback") == "fallback"


class TestMoveItem:
    def test_move_index_two_to_zero(self):
        assert move_item(["a", "b", "c", "d"], 2, 0) == ["c", "a", "b", "d"]

    def test_move_forward(self):
        assert move_item(["a", "b", "c", "d"], 0, 3) == ["b", "c", "d", "a"]

    def test_same_index(self):
        assert move_item(["a", "b"], 1, 1) == ["a", "b"]

    def test_does_not_mutate_input(self):
        items = ["a", "b", "c"]
        move_item(items, 0, 2)
        assert items == ["a", "b", "c"]

    @pytest.mark.parametrize("src, dst", [(-1, 0), (0, 3), (5, 1)])
    def test_out_of_range(self, src, dst):
        with pytest.raises(IndexError):
            move_item(["a", "b", "c"], src, dst)


class TestEntityStore:
    def test_empty_store(self, entities):
        assert entities.assets == []
        assert entities.products == []
        assert entities.results == []

    def test_append_assigns_unique_ids(self, entities):
        a = entities.add_asset(png_data_url(), AssetOrigin.UPLOADED)
        b = entities.add_asset(png_data_url(), AssetOrigin.GENERATED, prompt="x")
        assert a.id != b.id
        assert [x.id for x in entities.assets] == [a.id, b.id]

    def test_collections_persist(self, kv):
        store = EntityStore(kv)
        asset = store.add_asset(png_data_url(), AssetOrigin.GENERATED, prompt="a cat")
        product = store.add_product(png_data_url())
        result = store.add_result(png_data_url())

        reopened = EntityStore(KeyValueStore(kv.path))
        assert reopened.assets == [asset]
        assert reopened.products == [product]
        assert reopened.results == [result]

    def test_stored_format(self, entities, kv):
        entities.add_asset("data:image/png;base64,AAAA", AssetOrigin.UPLOADED)
        stored = json.loads(kv.get(ASSETS_KEY))
        assert stored[0]["type"] == "upload"
        assert "prompt" not in stored[0]

    def test_update_asset_image_keeps_identity(self, entities):
        asset = entities.add_asset(png_data_url(), AssetOrigin.GENERATED, prompt="orig")
        updated = entities.update_asset_image(asset.id, "data:image/png;base64,BBBB")
        assert (updated.id, updated.origin, updated.prompt) == (asset.id, asset.origin, "orig")
        assert entities.get_asset(asset.id).src == "data:image/png;base64,BBBB"

    def test_update_missing_asset(self, entities):
        with pytest.raises(EntityNotFound):
            entities.update_asset_image("missing", "data:image/png;base64,AAAA")

    def test_delete(self, entities):
        product = entities.add_product(png_data_url())
        assert entities.delete_product(product.id) is True
        assert entities.delete_product(product.id) is False
        assert entities.products == []

    def test_move_result_persists(self, entities, kv):
        results = [entities.add_result(png_data_url()) for _ in range(4)]
        entities.move_result(2, 0)
        expected = [results[2].id, results[0].id, results[1].id, results[3].id]
        assert [r.id for r in entities.results] == expected
        assert [r["id"] for r in json.loads(kv.get(RESULTS_KEY))] == expected

    def test_malformed_collection_starts_empty(self, kv):
        kv.set(ASSETS_KEY, json.dumps([{"id": "a1"}]))
        assert EntityStore(kv).assets == []

    def test_clear(self, entities):
        entities.add_asset(png_data_url(), AssetOrigin.UPLOADED)
        entities.add_result(png_data_url())
        entities.clear()
        assert entities.assets == [] and entities.results == []


def test_concurrent_writers_keep_every_last_value(kv):
    errors = []

    def writer(n):
        for i in range(200):
            try:
                kv.set(f"k{n}", str(i))
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    reopened = KeyValueStore(kv.path)
    assert {f"k{n}": reopened.get(f"k{n}") for n in range(4)} == {f"k{n}": "199" for n in range(4)}
    assert list(kv.path.parent.glob("*.tmp")) == []
