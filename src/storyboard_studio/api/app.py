from __future__ import annotations

import logging

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from storyboard_studio.config import settings
from storyboard_studio.editor import StoryboardEditor
from storyboard_studio.errors import (
    ApiNotConfigured,
    ConfirmationRequired,
    EntityNotFound,
    GenerationFailed,
    GenerationInProgress,
    ImportParseError,
    ImportRejected,
    InvalidImageData,
    StoryboardError,
)
from storyboard_studio.images import parse_data_url
from storyboard_studio.models import AssetCategory, AssetCreationForm, GENDER_OPTIONS, RACE_OPTIONS
from storyboard_studio.storage import KeyValueStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="AI Storyboard Studio")

# Every endpoint is async so editor state is only touched from the event loop.
editor = StoryboardEditor(KeyValueStore())

_STATUS_BY_ERROR: dict[type[StoryboardError], int] = {
    ApiNotConfigured: 400,
    ConfirmationRequired: 400,
    ImportRejected: 400,
    ImportParseError: 400,
    InvalidImageData: 400,
    EntityNotFound: 404,
    GenerationInProgress: 409,
    GenerationFailed: 502,
}


@app.exception_handler(StoryboardError)
async def storyboard_error_handler(request: Request, exc: StoryboardError) -> JSONResponse:
    status = _STATUS_BY_ERROR.get(type(exc), 400)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_category(value: str) -> AssetCategory:
    try:
        return AssetCategory(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"unknown asset category '{value}'")


@app.get("/state")
async def get_state():
    return editor.to_dict()


@app.get("/options")
async def get_options():
    return {
        "categories": [c.value for c in AssetCategory],
        "races": list(RACE_OPTIONS),
        "genders": list(GENDER_OPTIONS),
    }


@app.post("/settings/api-key")
async def save_api_key(api_key: str = Form("")):
    configured = editor.set_api_key(api_key)
    return {"api_configured": configured}


@app.post("/assets/upload")
async def upload_asset(file: UploadFile = File(...)):
    content = await file.read()
    asset = editor.upload_asset(content)
    return asset.to_dict()


@app.post("/products/upload")
async def upload_product(file: UploadFile = File(...)):
    content = await file.read()
    product = editor.upload_product(content)
    return product.to_dict()


@app.post("/assets/generate")
async def generate_asset(
    category: str = Form(AssetCategory.HUMAN.value),
    description: str = Form(...),
    race: str = Form(RACE_OPTIONS[0]),
    gender: str = Form(GENDER_OPTIONS[0]),
):
    form = AssetCreationForm(category=_parse_category(category), description=description, race=race, gender=gender)
    asset = await editor.orchestrator.create_asset(form)
    if asset is None:
        raise HTTPException(status_code=400, detail="description is required")
    return asset.to_dict()


@app.post("/assets/{asset_id}/regenerate")
async def regenerate_asset(asset_id: str, prompt: str = Form(...)):
    asset = await editor.orchestrator.regenerate_asset(asset_id, prompt)
    if asset is None:
        raise HTTPException(status_code=400, detail="describe the changes to make")
    return asset.to_dict()


@app.post("/results/{result_id}/continue")
async def continue_result(result_id: str, prompt: str = Form("")):
    scene = await editor.orchestrator.continue_result(result_id, prompt)
    return scene.to_dict()


@app.post("/scenes/generate")
async def generate_scene(prompt: str = Form(...)):
    scene = await editor.orchestrator.generate_scene(prompt)
    if scene is None:
        raise HTTPException(status_code=400, detail="select at least one asset or result and describe the scene")
    return scene.to_dict()


@app.post("/selection/assets/{asset_id}")
async def toggle_asset(asset_id: str):
    editor.toggle_asset(asset_id)
    return editor.to_dict()["selection"]


@app.post("/selection/products/{product_id}")
async def select_product(product_id: str):
    editor.select_product(product_id)
    return editor.to_dict()["selection"]


@app.post("/selection/results/{result_id}")
async def select_result(result_id: str):
    editor.select_result(result_id)
    return editor.to_dict()["selection"]


@app.post("/selection/clear")
async def clear_selection():
    editor.selection.clear_all()
    return editor.to_dict()["selection"]


@app.post("/assets/{asset_id}/delete")
async def delete_asset(asset_id: str):
    return {"deleted": editor.delete_asset(asset_id)}


@app.post("/products/{product_id}/delete")
async def delete_product(product_id: str):
    return {"deleted": editor.delete_product(product_id)}


@app.post("/results/{result_id}/delete")
async def delete_result(result_id: str):
    return {"deleted": editor.delete_result(result_id)}


@app.post("/results/reorder")
async def reorder_results(from_index: int = Form(...), to_index: int = Form(...)):
    try:
        results = editor.entities.move_result(from_index, to_index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"results": [r.id for r in results]}


@app.get("/{kind}/{entity_id}/image")
async def download_image(kind: str, entity_id: str):
    if kind not in ("assets", "products", "results"):
        raise HTTPException(status_code=404, detail="unknown collection")
    entity = editor.find_image(kind, entity_id)
    mime_type, data = parse_data_url(entity.src)
    ext = mime_type.split("/")[-1] or "png"
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{kind[:-1]}-{entity_id}.{ext}"'},
    )


@app.get("/project/export")
async def export_project():
    return Response(
        content=editor.projects.save(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{settings.project_filename}"'},
    )


@app.post("/project/import")
async def import_project(file: UploadFile = File(...)):
    raw = await file.read()
    doc = editor.projects.load(raw)
    return {"assets": len(doc.assets), "products": len(doc.products), "results": len(doc.results)}


@app.post("/project/new")
async def new_project(confirm: str = Form("")):
    editor.projects.new_project(confirmed=_parse_bool(confirm))
    return editor.to_dict()
