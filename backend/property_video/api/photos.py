import os
import uuid
import aiofiles
from pathlib import Path

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, File

from property_video.api.dependencies import get_store
from property_video.config import settings
from property_video.models.video import VideoStatus
from property_video.schemas.photo import PhotoCoverUpdate, PhotoOrderUpdate, PhotoResponse
from property_video.storage import VideoStore

router = APIRouter(tags=["photos"])

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 Mo


@router.post("/videos/{video_id}/photos", response_model=PhotoResponse, status_code=201)
async def upload_photo(
    video_id: int,
    file: UploadFile = File(...),
    order: int | None = Form(default=None),
    is_cover: bool = Form(default=False),
    store: VideoStore = Depends(get_store),
):
    video = await store.get_video(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    if video.status == VideoStatus.PROCESSING.value:
        raise HTTPException(status_code=400, detail="Cannot add photos while the video is being generated")

    # Valider l'extension
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"File type '{ext}' not allowed. Use: {ALLOWED_EXTENSIONS}")

    existing = await store.list_photos(video_id)
    if len(existing) >= settings.MAX_PHOTOS:
        raise HTTPException(status_code=400, detail=f"Photo limit reached (max {settings.MAX_PHOTOS})")

    # Valider la taille
    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(status_code=400, detail=f"File too large (max {MAX_FILE_SIZE // 1024 // 1024} Mo)")

    # Par défaut : après la dernière photo (les trous d'ordre sont permis)
    if order is None:
        order = max((p.order for p in existing), default=-1) + 1

    stored_name = f"{uuid.uuid4()}{ext}"
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(upload_dir / stored_name, "wb") as f:
        await f.write(content)

    return await store.create_photo(
        video_id=video_id,
        original_name=file.filename or "unknown",
        stored_name=stored_name,
        order=order,
        is_cover=is_cover,
    )


@router.get("/videos/{video_id}/photos", response_model=list[PhotoResponse])
async def list_photos(video_id: int, store: VideoStore = Depends(get_store)):
    if not await store.get_video(video_id):
        raise HTTPException(status_code=404, detail="Video not found")
    return await store.list_photos(video_id)


@router.patch("/photos/{photo_id}/order", response_model=PhotoResponse)
async def update_photo_order(photo_id: int, data: PhotoOrderUpdate, store: VideoStore = Depends(get_store)):
    photo = await store.update_photo_order(photo_id, data.order)
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")
    return photo


@router.patch("/photos/{photo_id}/cover", response_model=PhotoResponse)
async def update_photo_cover(photo_id: int, data: PhotoCoverUpdate, store: VideoStore = Depends(get_store)):
    photo = await store.update_photo_cover(photo_id, data.is_cover)
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")
    return photo


@router.delete("/photos/{photo_id}", status_code=204)
async def delete_photo(photo_id: int, store: VideoStore = Depends(get_store)):
    photo = await store.get_photo(photo_id)
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")

    # Supprimer le fichier
    file_path = Path(settings.UPLOAD_DIR) / photo.stored_name
    if os.path.exists(file_path):
        os.remove(file_path)

    await store.delete_photo(photo_id)
