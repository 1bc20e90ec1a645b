"""
Pytest configuration and fixtures shared by all tests.
"""

import os
import tempfile

# Settings are read at import time; keep the app's default store out of the repo.
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="storyboard-test-"))
os.environ["GEMINI_API_KEY"] = ""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from storyboard_studio.images import to_data_url
from storyboard_studio.providers.base import GeneratedImage
from storyboard_studio.selection import SelectionTracker
from storyboard_studio.storage import EntityStore, KeyValueStore


def make_png(color=(255, 0, 0)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(color=(255, 0, 0)) -> str:
    return to_data_url(make_png(color), "image/png")


class FakeGenerator:
    """Records every request and answers with a queued image, ``None`` or an exception."""

    name = "fake"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.single_calls = []
        self.part_calls = []

    def _next(self):
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = make_png((0, 255, 0))
        if isinstance(response, Exception):
            raise response
        if response is None:
            return None
        return GeneratedImage(data=response, mime_type="image/png", provider=self.name, model="fake-model")

    async def generate_single_image(self, prompt):
        self.single_calls.append(prompt)
        return self._next()

    async def generate_from_parts(self, parts):
        self.part_calls.append(list(parts))
        return self._next()


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    return tmp_path


@pytest.fixture
def kv(temp_dir) -> KeyValueStore:
    return KeyValueStore(temp_dir / "state.json")


@pytest.fixture
def entities(kv) -> EntityStore:
    return EntityStore(kv)


@pytest.fixture
def selection() -> SelectionTracker:
    return SelectionTracker()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()
