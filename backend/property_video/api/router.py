from fastapi import APIRouter, Depends

from property_video.api.dependencies import verify_api_key
from property_video.api.music import router as music_router
from property_video.api.photos import router as photos_router
from property_video.api.videos import router as videos_router

api_router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])
api_router.include_router(videos_router)
api_router.include_router(photos_router)
api_router.include_router(music_router)
