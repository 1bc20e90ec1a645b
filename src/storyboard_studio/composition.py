"""Build the request parts sent to the image model for each kind of generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from storyboard_studio.images import image_to_part
from storyboard_studio.models import Asset, AssetCategory, AssetCreationForm, Product, ResultScene
from storyboard_studio.modes import CompositionMode
from storyboard_studio.providers.base import Part

NEW_SCENE_TEMPLATE = "Create a new scene featuring the provided character(s). Scene description: {prompt}"
PRODUCT_AD_TEMPLATE = (
    "Create a product advertisement scene. The character provided should be interacting with "
    "or showcasing the product. Scene description: {prompt}"
)
FROM_RESULT_TEMPLATE = "Edit the provided scene based on the following instruction: {prompt}"
FROM_CHARACTERS_TEMPLATE = "Create a scene with the following characters interacting: {prompt}"
CONTINUE_TEMPLATE = "Continue the scene. {prompt}"

ASSET_BASE_TEMPLATE = "Create a high-quality, detailed image of a {category}: {description}."
HUMAN_QUALIFIER_TEMPLATE = " Gender: {gender}. Race: {race}."
COMPOSITING_QUALIFIER = (
    " The asset should be on a plain white background, full body shot, with no shadows, "
    "suitable for compositing."
)


@dataclass(frozen=True)
class CompositionInputs:
    prompt: str
    assets: Sequence[Asset] = ()
    product: Product | None = None
    result: ResultScene | None = None


def _new_scene(inputs: CompositionInputs) -> list[Part]:
    if not inputs.assets:
        return []
    parts: list[Part] = [image_to_part(a.src) for a in inputs.assets]
    parts.append(NEW_SCENE_TEMPLATE.format(prompt=inputs.prompt))
    return parts


def _product_ad(inputs: CompositionInputs) -> list[Part]:
    if not inputs.assets or inputs.product is None:
        return []
    return [
        image_to_part(inputs.assets[0].src),
        image_to_part(inputs.product.src),
        PRODUCT_AD_TEMPLATE.format(prompt=inputs.prompt),
    ]


def _from_result(inputs: CompositionInputs) -> list[Part]:
    if inputs.result is None:
        return []
    return [image_to_part(inputs.result.src), FROM_RESULT_TEMPLATE.format(prompt=inputs.prompt)]


def _from_characters(inputs: CompositionInputs) -> list[Part]:
    if not inputs.assets:
        return []
    parts: list[Part] = [image_to_part(a.src) for a in inputs.assets]
    parts.append(FROM_CHARACTERS_TEMPLATE.format(prompt=inputs.prompt))
    return parts


def _idle(inputs: CompositionInputs) -> list[Part]:
    return []


ASSEMBLERS: dict[CompositionMode, Callable[[CompositionInputs], list[Part]]] = {
    CompositionMode.IDLE: _idle,
    CompositionMode.NEW_SCENE: _new_scene,
    CompositionMode.PRODUCT_AD: _product_ad,
    CompositionMode.FROM_RESULT: _from_result,
    CompositionMode.FROM_CHARACTERS: _from_characters,
}


def assemble_parts(mode: CompositionMode, inputs: CompositionInputs) -> list[Part]:
    """Return image parts followed by one instruction string, or ``[]`` if there is nothing to send."""
    if not inputs.prompt:
        return []
    return ASSEMBLERS[mode](inputs)


def regeneration_parts(asset: Asset, instruction: str) -> list[Part]:
    return [image_to_part(asset.src), instruction]


def continuation_parts(result: ResultScene, instruction: str) -> list[Part]:
    return [image_to_part(result.src), CONTINUE_TEMPLATE.format(prompt=instruction)]


def build_asset_prompt(form: AssetCreationForm) -> str:
    prompt = ASSET_BASE_TEMPLATE.format(category=form.category.value, description=form.description)
    if form.category is AssetCategory.HUMAN:
        prompt += HUMAN_QUALIFIER_TEMPLATE.format(gender=form.gender, race=form.race)
    if form.category.is_character:
        prompt += COMPOSITING_QUALIFIER
    return prompt
