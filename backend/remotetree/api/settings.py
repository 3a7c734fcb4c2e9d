from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from remotetree.config import SETTINGS_SECTION
from remotetree.settings.store import list_settings, set_settings


router = APIRouter()


class UpdateSettingsBody(BaseModel):
    settings: dict[str, str]


@router.get("/api/settings")
def get_settings() -> dict:
    return {"settings": list_settings(SETTINGS_SECTION + ".")}


@router.put("/api/settings")
def put_settings(request: Request, body: UpdateSettingsBody) -> dict:
    bad = [k for k in body.settings if not k.startswith(SETTINGS_SECTION + ".")]
    if bad:
        raise HTTPException(status_code=400, detail=f"Settings must live under {SETTINGS_SECTION}.: {bad}")
    set_settings(body.settings)
    if body.settings:
        request.app.state.workbench.configuration.changed(*body.settings.keys())
    return {"settings": list_settings(SETTINGS_SECTION + ".")}
