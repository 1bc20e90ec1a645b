from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storyboard_studio.selection import SelectionState


class CompositionMode(str, Enum):
    IDLE = "IDLE"
    NEW_SCENE = "NEW"
    PRODUCT_AD = "PRODUCT_AD"
    FROM_RESULT = "FROM_RESULT"
    FROM_CHARACTERS = "FROM_CHARACTER"


def resolve_mode(selection: "SelectionState") -> CompositionMode:
    """Derive the composition mode from the shape of the current selection.

    Two or more assets with a product selected resolve to FROM_CHARACTERS:
    a product ad takes exactly one character.
    """
    n_assets = len(selection.asset_ids)
    if selection.result_id:
        return CompositionMode.FROM_RESULT
    if n_assets > 1 and not selection.product_id:
        return CompositionMode.FROM_CHARACTERS
    if n_assets == 1 and selection.product_id:
        return CompositionMode.PRODUCT_AD
    if n_assets >= 1:
        return CompositionMode.NEW_SCENE
    return CompositionMode.IDLE


@dataclass(frozen=True)
class ModeDisplay:
    title: str
    placeholder: str
    action_label: str


MODE_DISPLAY: dict[CompositionMode, ModeDisplay] = {
    CompositionMode.IDLE: ModeDisplay(
        title="Scene Creator",
        placeholder="Select an asset to get started",
        action_label="Create Scene",
    ),
    CompositionMode.NEW_SCENE: ModeDisplay(
        title="Create New Scene",
        placeholder="Describe the scene you want to create...",
        action_label="Create Scene",
    ),
    CompositionMode.PRODUCT_AD: ModeDisplay(
        title="Create Product Ad",
        placeholder="Describe the product advertisement...",
        action_label="Create Scene",
    ),
    CompositionMode.FROM_RESULT: ModeDisplay(
        title="Edit or Continue Scene",
        placeholder="Describe the change or what happens next in the scene...",
        action_label="Edit / Continue",
    ),
    CompositionMode.FROM_CHARACTERS: ModeDisplay(
        title="Create Interaction Scene",
        placeholder="Describe how the characters interact...",
        action_label="Create Scene",
    ),
}
