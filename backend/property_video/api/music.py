from fastapi import APIRouter

from property_video.config import settings
from property_video.schemas.video import MusicTrack
from property_video.services.music_catalog import list_tracks

router = APIRouter(prefix="/music", tags=["music"])


@router.get("/", response_model=list[MusicTrack])
async def get_music_tracks():
    return list_tracks(settings)
