import logging
import time
from pathlib import Path

from property_video.config import Settings, settings as default_settings
from property_video.errors import RenderError
from property_video.services.audio_mix import AudioMixPlan
from property_video.services.cleanup import RenderWorkspace
from property_video.services.job_logger import emit
from property_video.services.music_catalog import music_path
from property_video.services.render_requests import (
    AudioInput,
    AudioMixRequest,
    ConcatRequest,
    MediaEngine,
    MuxRequest,
    RenderRequest,
    SegmentRequest,
    TextCardRequest,
    TextLine,
)
from property_video.services.slide_plan import SlideKind, SlidePlan

logger = logging.getLogger(__name__)

# (taille de police, décalage vertical) par ligne
TITLE_LAYOUT = [(72, -90), (48, 0), (36, 100)]
CONTACT_LAYOUT = [(72, -150), (48, -30), (48, 60), (48, 150)]


def _manifest_line(path: Path) -> str:
    escaped = str(path.resolve()).replace("'", "'\\''")
    return f"file '{escaped}'\n"


class VideoAssembler:
    """Transforme un plan de slides + plan audio en requêtes de rendu ordonnées."""

    def __init__(self, engine: MediaEngine, settings: Settings = default_settings):
        self.engine = engine
        self.settings = settings

    def resolve_audio(self, video) -> tuple[Path | None, Path | None]:
        """Retourne (musique, narration) si les fichiers existent sur le disque."""
        music = music_path(video.music_track, self.settings)
        if not music.is_file():
            logger.warning(f"[{video.id}] Music file not found: {music} — vidéo sans musique")
            music = None

        narration = None
        if video.narration_url:
            candidate = Path(self.settings.AUDIO_DIR) / Path(video.narration_url).name
            if candidate.is_file():
                narration = candidate
            else:
                logger.warning(f"[{video.id}] Narration introuvable : {candidate}")
        return music, narration

    async def render(
        self,
        video,
        plan: SlidePlan,
        mix: AudioMixPlan,
        music: Path | None = None,
        narration: Path | None = None,
    ) -> str:
        """Rend la vidéo finale et retourne son URL publique (/videos/...)."""
        s = self.settings
        output_dir = Path(s.VIDEO_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"property-video-{video.id}-{int(time.time() * 1000)}.mp4"
        output_path = output_dir / filename

        try:
            with RenderWorkspace(Path(s.TEMP_DIR), video.id) as ws:
                # 1. Slides texte (titre, contact) en images fixes
                title_png = ws.track(f"title-{video.id}.png")
                await self._run(video.id, plan.title.label, self._text_card(title_png, plan.title.lines, TITLE_LAYOUT))
                contact_png = ws.track(f"contact-{video.id}.png")
                await self._run(
                    video.id, plan.contact.label,
                    self._text_card(contact_png, plan.contact.lines, CONTACT_LAYOUT, bold_first=True),
                )

                # 2. Un segment vidéo par slide, dans l'ordre du plan
                segments = []
                for idx, unit in enumerate(plan.units):
                    if unit.kind == SlideKind.TITLE:
                        source = title_png
                    elif unit.kind == SlideKind.CONTACT:
                        source = contact_png
                    else:
                        source = unit.source
                    segment = ws.track(f"{unit.kind.value}-{idx:03d}.mp4")
                    emit(video.id, "ffmpeg", "info",
                         f"Segment {idx + 1}/{len(plan.units)} ({unit.label}, {unit.duration}s)")
                    await self._run(video.id, unit.label, SegmentRequest(
                        source=source,
                        output_path=segment,
                        duration=unit.duration,
                        fps=s.VIDEO_FPS,
                        width=s.VIDEO_WIDTH,
                        height=s.VIDEO_HEIGHT,
                        fade_in_frames=s.VIDEO_FPS,
                        codec=s.VIDEO_CODEC,
                        preset=s.VIDEO_PRESET,
                    ))
                    segments.append(segment)

                # 3. Concaténation
                manifest = ws.track(f"filelist-{video.id}.txt")
                manifest.write_text("".join(_manifest_line(p) for p in segments))
                silent = ws.track(f"silent-{video.id}.mp4") if mix.has_audio else output_path
                await self._run(video.id, "concatenation", ConcatRequest(
                    manifest_path=manifest,
                    output_path=silent,
                    fps=s.VIDEO_FPS,
                    width=s.VIDEO_WIDTH,
                    height=s.VIDEO_HEIGHT,
                    codec=s.VIDEO_CODEC,
                    preset=s.VIDEO_PRESET,
                ))

                # 4-5. Musique et/ou narration
                if mix.has_audio:
                    if music is not None:
                        await self._check_music_length(video.id, music, mix)
                    mixed = ws.track(f"mixed-audio-{video.id}.mp3")
                    await self._run(video.id, "audio mix", self.mix_request(mix, music, narration, mixed))
                    await self._run(video.id, "mux", MuxRequest(
                        video_path=silent,
                        audio_path=mixed,
                        output_path=output_path,
                        audio_bitrate=s.AUDIO_BITRATE,
                    ))
        except Exception:
            # Jamais de vidéo partielle publiée
            if output_path.exists():
                output_path.unlink()
            raise

        if not output_path.exists():
            raise RenderError("final output", f"{output_path} was not produced")

        emit(video.id, "ffmpeg", "success", f"Vidéo assemblée → {output_path}")
        return f"/videos/{filename}"

    def mix_request(
        self, mix: AudioMixPlan, music: Path | None, narration: Path | None, output_path: Path
    ) -> AudioMixRequest:
        inputs = []
        if music is not None and mix.has_music:
            inputs.append(AudioInput(
                path=music,
                volume=mix.music_volume,
                fade_out_start=mix.music_fade_start,
                fade_duration=mix.music_fade_duration,
            ))
        if narration is not None and mix.has_narration:
            inputs.append(AudioInput(
                path=narration,
                volume=mix.narration_volume,
                delay_ms=mix.narration_delay_ms,
            ))
        return AudioMixRequest(inputs=tuple(inputs), output_path=output_path, master_volume=mix.master_volume)

    def _text_card(
        self, output_path: Path, texts: tuple[str, ...], layout: list[tuple[int, int]], bold_first: bool = False
    ) -> TextCardRequest:
        s = self.settings
        if bold_first:
            fonts = [s.FONT_BOLD] + [s.FONT_REGULAR] * (len(texts) - 1)
        else:
            fonts = [s.FONT_BOLD, s.FONT_REGULAR, s.FONT_MONO]
        lines = tuple(
            TextLine(text=text, font_file=font, font_size=size, y_offset=offset)
            for text, font, (size, offset) in zip(texts, fonts, layout)
        )
        return TextCardRequest(output_path=output_path, lines=lines, width=s.VIDEO_WIDTH, height=s.VIDEO_HEIGHT)

    async def _check_music_length(self, video_id: int, music: Path, mix: AudioMixPlan) -> None:
        duration = await self.engine.probe_duration(music)
        if duration is not None and duration < mix.total_duration:
            logger.warning(
                f"[{video_id}] Musique plus courte que la vidéo "
                f"({duration:.1f}s < {mix.total_duration:.1f}s)"
            )

    async def _run(self, video_id: int, stage: str, request: RenderRequest) -> None:
        result = await self.engine.run(request)
        if not result.ok:
            emit(video_id, "ffmpeg", "error", f"Échec FFmpeg ({stage})")
            raise RenderError(stage, result.output.strip().splitlines()[-1] if result.output.strip() else "")
