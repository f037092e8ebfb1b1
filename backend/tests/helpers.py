"""Doublures de test : moteur de rendu, narrateur, base SQLite temporaire."""

from pathlib import Path
from types import SimpleNamespace

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from property_video.errors import NarrationError
from property_video.models.base import Base
from property_video.models.photo import PropertyPhoto  # noqa: F401
from property_video.models.video import PropertyVideo  # noqa: F401
from property_video.services.narration import Narration
from property_video.services.render_requests import RenderResult
from property_video.storage import VideoStore


def make_video(**overrides) -> SimpleNamespace:
    fields = dict(
        id=1,
        status="pending",
        address="",
        street_address="12 Ocean Drive",
        city="Miami",
        state="FL",
        zip_code="33139",
        price="$1,250,000",
        description=None,
        contact_name="Jane Realtor",
        contact_phone="555-0100",
        contact_email="jane@example.com",
        music_track="upbeat-modern-home",
        slide_duration=5,
        transition_type="fade",
        show_price=True,
        voice_id=None,
        video_url=None,
        narration_url=None,
        ai_description=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def make_photo(photo_id: int, order: int, stored_name: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=photo_id,
        video_id=1,
        original_name=f"photo-{photo_id}.jpg",
        stored_name=stored_name or f"photo-{photo_id}.jpg",
        order=order,
        is_cover=False,
    )


async def make_store(db_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return VideoStore(async_sessionmaker(engine, expire_on_commit=False)), engine


class FakeEngine:
    """Enregistre les requêtes et crée un fichier de sortie factice pour chacune."""

    def __init__(self, fail_on=None, fail_at_call: int | None = None, on_run=None):
        self.requests = []
        self.fail_on = fail_on
        self.fail_at_call = fail_at_call
        self.on_run = on_run

    async def run(self, request) -> RenderResult:
        self.requests.append(request)
        if self.on_run:
            await self.on_run(request)
        call = len(self.requests)
        if (self.fail_on and isinstance(request, self.fail_on)) or call == self.fail_at_call:
            # Sortie partielle, comme un FFmpeg interrompu
            request.output_path.write_bytes(b"partial")
            return RenderResult(ok=False, output="frame=0\nConversion failed!")
        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        request.output_path.write_bytes(b"rendered")
        return RenderResult(ok=True)

    async def probe_duration(self, path: Path) -> float | None:
        return 120.0


class FakeNarrator:
    def __init__(self, audio_dir: Path, on_narrate=None):
        self.audio_dir = Path(audio_dir)
        self.on_narrate = on_narrate
        self.calls = 0

    async def narrate(self, video) -> Narration:
        self.calls += 1
        if self.on_narrate:
            await self.on_narrate(video)
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        (self.audio_dir / f"narration-{video.id}.mp3").write_bytes(b"voice")
        return Narration(description="A lovely home by the sea.", audio_url=f"/audio/narration-{video.id}.mp3")


class FailingNarrator:
    def __init__(self, message: str = "OPENAI_API_KEY is not configured", on_narrate=None, error=NarrationError):
        self.message = message
        self.on_narrate = on_narrate
        self.error = error

    async def narrate(self, video) -> Narration:
        if self.on_narrate:
            await self.on_narrate(video)
        raise self.error(self.message)
