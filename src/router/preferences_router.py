from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from core.dependencies import get_studio
from model.database import get_session
from model.preference import OutputPreferences
from service.preference_service import save_preferences
from service.studio import Studio

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


class PreferencesUpdate(BaseModel):
    crop_aspect_ratio: str | None = None
    resolution: str | None = None
    ppi: str | None = None
    output_format: str | None = None


@router.get("/", response_model=OutputPreferences)
async def get_preferences(studio: Studio = Depends(get_studio)):
    return studio.preferences


@router.patch("/", response_model=OutputPreferences)
async def update_preferences(
    req: PreferencesUpdate,
    studio: Studio = Depends(get_studio),
    session: Session = Depends(get_session),
):
    previous = studio.preferences
    studio.preferences = previous.updated(**req.model_dump(exclude_none=True))
    save_preferences(session, studio.preferences, previous)
    return studio.preferences
