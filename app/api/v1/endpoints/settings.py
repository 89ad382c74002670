"""Settings endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from app.db.store import DataStore, get_store
from app.schemas.setting import SettingRead, SettingUpdate
from app.services.settings_service import SettingsSaveError, load_setting, save_setting

router: APIRouter = APIRouter()


@router.get("/{key}", response_model=SettingRead)
async def read_setting(key: str, store: DataStore = Depends(get_store)) -> SettingRead:
    return SettingRead(key=key, value=await load_setting(store, key))


@router.put("/{key}", response_model=SettingRead)
async def write_setting(key: str, payload: SettingUpdate, store: DataStore = Depends(get_store)) -> SettingRead:
    try:
        await save_setting(store, key, payload.value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except SettingsSaveError as exc:
        raise HTTPException(status_code=503, detail="Failed to save settings. Please try again.") from exc
    return SettingRead(key=key, value=payload.value)
