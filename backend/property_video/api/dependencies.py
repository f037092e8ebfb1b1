from fastapi import Header, HTTPException

from property_video.config import settings
from property_video.database import async_session
from property_video.services.ffmpeg_engine import FFmpegEngine
from property_video.services.narration import Narrator
from property_video.services.video_assembler import VideoAssembler
from property_video.storage import VideoStore
from property_video.workers.video_pipeline import VideoGenerator

_store = VideoStore(async_session)
_generator: VideoGenerator | None = None


async def verify_api_key(x_api_key: str | None = Header(default=None)):
    if not settings.API_KEY:
        return  # Pas de clé configurée = pas d'auth (dev)
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_store() -> VideoStore:
    return _store


def get_generator() -> VideoGenerator:
    global _generator
    if _generator is None:
        _generator = VideoGenerator(
            store=_store,
            narrator=Narrator(settings),
            assembler=VideoAssembler(FFmpegEngine(settings), settings),
            settings=settings,
        )
    return _generator
