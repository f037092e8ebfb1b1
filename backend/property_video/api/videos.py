import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from property_video.api.dependencies import get_generator, get_store
from property_video.errors import GenerationInProgressError, NoPhotosError, NotFoundError
from property_video.models.video import PropertyVideo
from property_video.schemas.video import VideoCreate, VideoResponse, VideoStatusResponse, VideoUpdate
from property_video.services.job_logger import format_sse, subscribe, unsubscribe
from property_video.storage import VideoStore
from property_video.workers.video_pipeline import VideoGenerator

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("/", response_model=VideoResponse, status_code=201)
async def create_video(data: VideoCreate, store: VideoStore = Depends(get_store)):
    video = await store.create_video(**data.model_dump())
    logger.info(f"Video created: id={video.id}, music={video.music_track!r}")
    return video


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(video_id: int, store: VideoStore = Depends(get_store)):
    return await _get_video_or_404(store, video_id)


@router.patch("/{video_id}", response_model=VideoResponse)
async def update_video(video_id: int, data: VideoUpdate, store: VideoStore = Depends(get_store)):
    await _get_video_or_404(store, video_id)
    return await store.update_video(video_id, **data.model_dump(exclude_unset=True))


@router.get("/{video_id}/status", response_model=VideoStatusResponse)
async def get_status(video_id: int, store: VideoStore = Depends(get_store)):
    """Surface de polling : les clients interrogent jusqu'à sortie de `processing`."""
    video = await _get_video_or_404(store, video_id)
    return VideoStatusResponse(
        id=video.id,
        status=video.status,
        video_url=video.video_url,
        narration_url=video.narration_url,
        error=video.error_message,
    )


@router.post("/{video_id}/generate", response_model=VideoStatusResponse, status_code=202)
async def generate_video(video_id: int, generator: VideoGenerator = Depends(get_generator)):
    try:
        video = await generator.generate(video_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")
    except NoPhotosError:
        raise HTTPException(status_code=400, detail="No photos found for this video")
    except GenerationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return VideoStatusResponse(id=video.id, status=video.status)


@router.post("/{video_id}/cancel", response_model=VideoStatusResponse)
async def cancel_video(video_id: int, generator: VideoGenerator = Depends(get_generator)):
    try:
        video = await generator.cancel(video_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")
    return VideoStatusResponse(id=video.id, status=video.status, video_url=video.video_url)


@router.get("/{video_id}/logs")
async def stream_logs(video_id: int, request: Request, store: VideoStore = Depends(get_store)):
    """Stream des logs du pipeline en temps réel via Server-Sent Events."""
    await _get_video_or_404(store, video_id)

    queue = subscribe(video_id)

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    entry = await asyncio.wait_for(queue.get(), timeout=15.0)
                    yield format_sse(entry)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            unsubscribe(video_id, queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


async def _get_video_or_404(store: VideoStore, video_id: int) -> PropertyVideo:
    video = await store.get_video(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return video
