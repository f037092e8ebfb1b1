import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from property_video.config import Settings, settings as default_settings
from property_video.errors import GenerationInProgressError, NoPhotosError, NotFoundError
from property_video.models.photo import PropertyPhoto
from property_video.models.video import PropertyVideo, VideoStatus
from property_video.services.audio_mix import plan_audio_mix
from property_video.services.job_logger import emit
from property_video.services.narration import Narrator
from property_video.services.slide_plan import build_slide_plan
from property_video.services.video_assembler import VideoAssembler
from property_video.storage import VideoStore

logger = logging.getLogger(__name__)

# Appliquées aux champs obligatoires vides, puis persistées avant le rendu
PLACEHOLDERS = {
    "address": "Beautiful Property",
    "price": "$375,000",
    "contact_name": "Property Owner",
}


@dataclass
class CancellationToken:
    """Annulation coopérative d'une génération.

    `lock` sérialise le point de contrôle d'avant rendu et `cancel()` : une
    fois `rendering` passé à True, plus aucune annulation n'est écrite.
    """

    _event: asyncio.Event = field(default_factory=asyncio.Event)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    rendering: bool = False

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class GenerationHandle:
    task: asyncio.Task
    token: CancellationToken


class VideoGenerator:
    """Orchestre une génération : narration → contrôle d'annulation → rendu.

    `generate()` rend la main dès que le job est en `processing` ; la suite
    tourne dans une tâche asyncio dédiée et n'est observable que via le
    statut persisté.
    """

    def __init__(
        self,
        store: VideoStore,
        narrator: Narrator,
        assembler: VideoAssembler,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.narrator = narrator
        self.assembler = assembler
        self.settings = settings
        self._handles: dict[int, GenerationHandle] = {}
        # Jobs réservés par un generate() qui n'a pas encore lancé sa tâche
        self._starting: set[int] = set()

    def is_running(self, video_id: int) -> bool:
        handle = self._handles.get(video_id)
        return handle is not None and not handle.task.done()

    async def generate(self, video_id: int) -> PropertyVideo:
        # Réservation avant le premier await
        if video_id in self._starting or self.is_running(video_id):
            raise GenerationInProgressError(video_id)
        self._starting.add(video_id)
        try:
            video = await self.store.get_video(video_id)
            if not video:
                raise NotFoundError(f"Video {video_id} not found")

            # Liste des photos lue une seule fois, au lancement
            photos = await self.store.list_photos(video_id)
            if not photos:
                raise NoPhotosError(video_id)

            await self._apply_placeholders(video)
            video = await self.store.update_status(video_id, VideoStatus.PROCESSING)

            token = CancellationToken()
            task = asyncio.create_task(self.run(video, photos, token), name=f"generate-video-{video_id}")
            handle = GenerationHandle(task=task, token=token)
            self._handles[video_id] = handle
            task.add_done_callback(lambda _t: self._forget(video_id, handle))
        finally:
            self._starting.discard(video_id)

        emit(video_id, "pipeline", "info", f"Génération lancée — {len(photos)} photo(s)")
        return video

    async def cancel(self, video_id: int) -> PropertyVideo:
        """processing → cancelled tant que le rendu n'a pas commencé ; sans effet sinon."""
        video = await self.store.get_video(video_id)
        if not video:
            raise NotFoundError(f"Video {video_id} not found")

        handle = self._handles.get(video_id)
        if handle is None:
            # Pas de tâche vivante dans ce process (job orphelin)
            if await self.store.transition_status(video_id, VideoStatus.PROCESSING, VideoStatus.CANCELLED):
                emit(video_id, "pipeline", "warning", "Job orphelin annulé")
            return await self.store.get_video(video_id)

        async with handle.token.lock:
            if handle.token.rendering:
                emit(video_id, "pipeline", "warning", "Annulation ignorée : rendu déjà commencé")
                return video
            if await self.store.transition_status(video_id, VideoStatus.PROCESSING, VideoStatus.CANCELLED):
                handle.token.cancel()
                emit(video_id, "pipeline", "warning", "Annulation demandée")
        return await self.store.get_video(video_id)

    async def wait(self, video_id: int) -> None:
        """Attend la fin de la génération en cours (tests, arrêt propre)."""
        handle = self._handles.get(video_id)
        if handle:
            await asyncio.wait({handle.task})

    async def run(self, video: PropertyVideo, photos: list[PropertyPhoto], token: CancellationToken) -> None:
        video_id = video.id
        try:
            # ── Étape 1 : narration (best effort, quelle que soit l'erreur) ──
            narrated = False
            try:
                narration = await self.narrator.narrate(video)
            except Exception as e:
                logger.warning(f"[{video_id}] Narration failed: {e}")
                emit(video_id, "pipeline", "warning", f"Narration indisponible : {e} — vidéo sans narration")
            else:
                await self.store.update_narration(video_id, narration.description, narration.audio_url)
                narrated = True

            # ── Étape 2 : unique point d'annulation, avant le rendu ──
            async with token.lock:
                current = await self.store.get_video(video_id)
                if current is None:
                    logger.error(f"[{video_id}] Video disappeared before rendering")
                    return
                if token.cancelled or current.status == VideoStatus.CANCELLED.value:
                    emit(video_id, "pipeline", "warning", "Génération annulée avant le rendu")
                    return
                token.rendering = True

            source = current if narrated else video

            # ── Étape 3 : plan de slides + plan audio ──
            plan = build_slide_plan(
                source, photos, Path(self.settings.UPLOAD_DIR), self.settings.CONTACT_SLIDE_DURATION
            )
            for warning in plan.warnings:
                emit(video_id, "pipeline", "warning", warning)

            music, narration_path = self.assembler.resolve_audio(source)
            if not narrated:
                narration_path = None
            mix = plan_audio_mix(
                plan,
                has_music=music is not None,
                has_narration=narration_path is not None,
                fade_seconds=self.settings.MUSIC_FADE_SECONDS,
            )
            emit(video_id, "ffmpeg", "info",
                 f"Rendu — {len(plan.units)} slides, {mix.total_duration:.0f}s, "
                 f"audio: {'narration + ' if mix.has_narration else ''}"
                 f"{'musique' if mix.has_music else 'aucune musique'}")

            # ── Étape 4 : rendu ──
            video_url = await self.assembler.render(source, plan, mix, music, narration_path)
            await self.store.update_video_url(video_id, video_url)
            emit(video_id, "pipeline", "success", f"Vidéo prête → {video_url}")
            logger.info(f"[{video_id}] Completed! Output: {video_url}")

        except Exception as e:
            logger.exception(f"[{video_id}] Pipeline failed: {e}")
            emit(video_id, "pipeline", "error", f"Erreur fatale : {e}")
            try:
                await self.store.update_status(video_id, VideoStatus.ERROR, error_message=str(e))
            except Exception:
                logger.exception(f"[{video_id}] Could not persist error status")

    async def _apply_placeholders(self, video: PropertyVideo) -> None:
        updates = {}
        if not (video.address or "").strip() and not (video.street_address or "").strip():
            updates["address"] = PLACEHOLDERS["address"]
        if not (video.price or "").strip():
            updates["price"] = PLACEHOLDERS["price"]
        if not (video.contact_name or "").strip():
            updates["contact_name"] = PLACEHOLDERS["contact_name"]
        if updates:
            logger.info(f"[{video.id}] Champs par défaut appliqués : {sorted(updates)}")
            await self.store.update_video(video.id, **updates)

    def _forget(self, video_id: int, handle: GenerationHandle) -> None:
        if self._handles.get(video_id) is handle:
            del self._handles[video_id]
