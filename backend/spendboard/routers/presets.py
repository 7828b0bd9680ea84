"""Shared filter preset endpoints.

Presets are stored as one JSON list in app_settings under the shared key;
presets saved by older dashboards under the legacy key are migrated on first
read (see services/filter_presets.py).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services.filter_presets import FilterPresetStore, SqlSettingsRepository


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/presets",
    tags=["Filter presets"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


def get_preset_store(db: Session = Depends(get_db)) -> FilterPresetStore:
    return FilterPresetStore(SqlSettingsRepository(db))


@router.get("", response_model=List[schemas.FilterPresetOut], summary="List filter presets")
def list_presets(store: FilterPresetStore = Depends(get_preset_store)):
    return store.load()


@router.post(
    "",
    response_model=schemas.FilterPresetOut,
    status_code=status.HTTP_201_CREATED,
    summary="Save filter preset",
)
def create_preset(payload: schemas.FilterPresetCreate, store: FilterPresetStore = Depends(get_preset_store)):
    try:
        preset = store.save(payload.name, payload.filters)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    logger.info(f"[PRESETS] Saved preset {preset['id']} ({preset['name']})")
    return preset


@router.delete("/{preset_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete filter preset")
def delete_preset(preset_id: str, store: FilterPresetStore = Depends(get_preset_store)):
    if not store.delete(preset_id):
        raise HTTPException(status_code=404, detail="Preset not found")
    logger.info(f"[PRESETS] Deleted preset {preset_id}")
    return None
