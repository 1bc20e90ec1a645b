from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any


def new_id() -> str:
    return uuid.uuid4().hex


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


class AssetOrigin(str, Enum):
    GENERATED = "ai"
    UPLOADED = "upload"


class AssetCategory(str, Enum):
    HUMAN = "Human"
    ANIMAL = "Animal"
    SCENERY = "Scenery"
    GAME_CHARACTER = "Game Character"
    ANIME_CHARACTER = "Anime Character"
    CARTOON_3D_CHARACTER = "3D Cartoon Character"

    @property
    def is_character(self) -> bool:
        # Everything that gets cut out and composited into a scene later.
        return self is not AssetCategory.SCENERY


RACE_OPTIONS = (
    "Asian",
    "Black",
    "White",
    "Hispanic/Latinx",
    "Middle Eastern",
    "South Asian",
    "Southeast Asian",
    "Pacific Islander",
    "Indigenous",
    "Multiracial",
)
GENDER_OPTIONS = ("Female", "Male")


@dataclass(frozen=True)
class AssetCreationForm:
    category: AssetCategory
    description: str
    race: str = RACE_OPTIONS[0]
    gender: str = GENDER_OPTIONS[0]


@dataclass(frozen=True)
class Asset:
    id: str
    src: str  # data URL
    origin: AssetOrigin
    prompt: str | None = None

    @property
    def regenerable(self) -> bool:
        return self.origin is AssetOrigin.GENERATED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "src": self.src}
        if self.prompt is not None:
            data["prompt"] = self.prompt
        data["type"] = self.origin.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        if not isinstance(data, dict):
            raise ValueError("asset entry must be an object")
        prompt = data.get("prompt")
        if prompt is not None and not isinstance(prompt, str):
            raise ValueError("'prompt' must be a string")
        return cls(
            id=_require_str(data, "id"),
            src=_require_str(data, "src"),
            origin=AssetOrigin(data.get("type")),
            prompt=prompt,
        )


@dataclass(frozen=True)
class Product:
    id: str
    src: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "src": self.src}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        if not isinstance(data, dict):
            raise ValueError("product entry must be an object")
        return cls(id=_require_str(data, "id"), src=_require_str(data, "src"))


@dataclass(frozen=True)
class ResultScene:
    id: str
    src: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "src": self.src}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultScene":
        if not isinstance(data, dict):
            raise ValueError("result entry must be an object")
        return cls(id=_require_str(data, "id"), src=_require_str(data, "src"))
