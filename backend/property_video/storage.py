"""Accès persistant aux vidéos et photos (SQLAlchemy async).

Chaque méthode ouvre sa propre session et commit : une transition de statut
correspond à un UPDATE atomique, lisible immédiatement par les clients qui
pollent.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from property_video.models.photo import PropertyPhoto
from property_video.models.video import PropertyVideo, VideoStatus

logger = logging.getLogger(__name__)


class VideoStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Vidéos ──

    async def create_video(self, **fields) -> PropertyVideo:
        async with self._session_factory() as db:
            video = PropertyVideo(**fields)
            db.add(video)
            await db.commit()
            await db.refresh(video)
            return video

    async def get_video(self, video_id: int) -> PropertyVideo | None:
        async with self._session_factory() as db:
            result = await db.execute(select(PropertyVideo).where(PropertyVideo.id == video_id))
            return result.scalar_one_or_none()

    async def update_video(self, video_id: int, **fields) -> PropertyVideo | None:
        # L'id est immuable
        fields.pop("id", None)
        if fields:
            await self._update(video_id, **fields)
        return await self.get_video(video_id)

    async def update_status(
        self, video_id: int, status: VideoStatus, error_message: str | None = None
    ) -> PropertyVideo | None:
        await self._update(video_id, status=status.value, error_message=error_message)
        return await self.get_video(video_id)

    async def transition_status(
        self, video_id: int, from_status: VideoStatus, to_status: VideoStatus
    ) -> bool:
        """Passe de from_status à to_status en un seul UPDATE conditionnel.

        Retourne False si le job n'était pas dans from_status.
        """
        async with self._session_factory() as db:
            result = await db.execute(
                update(PropertyVideo)
                .where(PropertyVideo.id == video_id, PropertyVideo.status == from_status.value)
                .values(status=to_status.value, updated_at=datetime.utcnow())
            )
            await db.commit()
            return result.rowcount == 1

    async def update_narration(
        self, video_id: int, ai_description: str, narration_url: str
    ) -> PropertyVideo | None:
        await self._update(video_id, ai_description=ai_description, narration_url=narration_url)
        return await self.get_video(video_id)

    async def update_video_url(self, video_id: int, video_url: str) -> PropertyVideo | None:
        await self._update(
            video_id,
            video_url=video_url,
            status=VideoStatus.COMPLETED.value,
            error_message=None,
        )
        return await self.get_video(video_id)

    async def _update(self, video_id: int, **values) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(PropertyVideo)
                .where(PropertyVideo.id == video_id)
                .values(**values, updated_at=datetime.utcnow())
            )
            await db.commit()

    # ── Photos ──

    async def create_photo(
        self,
        video_id: int,
        original_name: str,
        stored_name: str,
        order: int = 0,
        is_cover: bool = False,
    ) -> PropertyPhoto:
        async with self._session_factory() as db:
            if is_cover:
                await self._clear_cover(db, video_id)
            photo = PropertyPhoto(
                video_id=video_id,
                original_name=original_name,
                stored_name=stored_name,
                order=order,
                is_cover=is_cover,
            )
            db.add(photo)
            await db.commit()
            await db.refresh(photo)
            return photo

    async def get_photo(self, photo_id: int) -> PropertyPhoto | None:
        async with self._session_factory() as db:
            result = await db.execute(select(PropertyPhoto).where(PropertyPhoto.id == photo_id))
            return result.scalar_one_or_none()

    async def list_photos(self, video_id: int) -> list[PropertyPhoto]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(PropertyPhoto)
                .where(PropertyPhoto.video_id == video_id)
                .order_by(PropertyPhoto.order, PropertyPhoto.id)
            )
            return list(result.scalars().all())

    async def update_photo_order(self, photo_id: int, order: int) -> PropertyPhoto | None:
        async with self._session_factory() as db:
            photo = await db.get(PropertyPhoto, photo_id)
            if not photo:
                return None
            photo.order = order
            await db.commit()
            await db.refresh(photo)
            return photo

    async def update_photo_cover(self, photo_id: int, is_cover: bool) -> PropertyPhoto | None:
        """Met à jour le flag cover ; une seule photo de couverture par vidéo."""
        async with self._session_factory() as db:
            photo = await db.get(PropertyPhoto, photo_id)
            if not photo:
                return None
            if is_cover:
                await self._clear_cover(db, photo.video_id)
            photo.is_cover = is_cover
            await db.commit()
            await db.refresh(photo)
            return photo

    async def delete_photo(self, photo_id: int) -> bool:
        async with self._session_factory() as db:
            photo = await db.get(PropertyPhoto, photo_id)
            if not photo:
                return False
            await db.delete(photo)
            await db.commit()
            return True

    @staticmethod
    async def _clear_cover(db: AsyncSession, video_id: int) -> None:
        await db.execute(
            update(PropertyPhoto)
            .where(PropertyPhoto.video_id == video_id, PropertyPhoto.is_cover.is_(True))
            .values(is_cover=False)
        )
