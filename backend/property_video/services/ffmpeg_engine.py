import asyncio
import logging
import subprocess
from pathlib import Path

from moviepy import AudioFileClip
from moviepy.config import FFMPEG_BINARY

from property_video.config import Settings, settings as default_settings
from property_video.services.formatting import escape_drawtext
from property_video.services.render_requests import (
    AudioMixRequest,
    ConcatRequest,
    MuxRequest,
    RenderRequest,
    RenderResult,
    SegmentRequest,
    TextCardRequest,
)

logger = logging.getLogger(__name__)

STDERR_TAIL = 2000  # caractères de stderr conservés dans le diagnostic


def _num(value: float) -> str:
    return f"{value:g}"


def _quote_filter_value(value: str) -> str:
    """Protège une valeur d'option au niveau du parseur de filtergraph.

    Le filtergraph retire une couche de quotes et d'antislashs avant que le
    filtre ne lise ses options : la valeur est donc placée entre quotes,
    chaque `'` s'écrivant `'\\''`.
    """
    return "'" + value.replace("'", "'\\''") + "'"


def _fit_canvas(width: int, height: int) -> str:
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
    )


class FFmpegEngine:
    """Traduit les requêtes de rendu en commandes FFmpeg et les exécute."""

    def __init__(self, settings: Settings = default_settings):
        self.binary = settings.FFMPEG_BINARY or FFMPEG_BINARY
        self.timeout = settings.FFMPEG_TIMEOUT

    def build_command(self, request: RenderRequest) -> list[str]:
        if isinstance(request, TextCardRequest):
            return self._text_card_command(request)
        if isinstance(request, SegmentRequest):
            return self._segment_command(request)
        if isinstance(request, ConcatRequest):
            return self._concat_command(request)
        if isinstance(request, AudioMixRequest):
            return self._audio_mix_command(request)
        if isinstance(request, MuxRequest):
            return self._mux_command(request)
        raise TypeError(f"Unsupported render request: {type(request).__name__}")

    async def run(self, request: RenderRequest) -> RenderResult:
        cmd = self.build_command(request)
        logger.info(f"FFmpeg: {' '.join(cmd)}")
        try:
            proc = await asyncio.to_thread(
                subprocess.run, cmd, capture_output=True, text=True, timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"FFmpeg n'a pas pu s'exécuter : {e}")
            return RenderResult(ok=False, output=str(e))

        output = (proc.stderr or "")[-STDERR_TAIL:]
        if proc.returncode != 0:
            logger.error(f"FFmpeg a échoué (code {proc.returncode}) : {output}")
            return RenderResult(ok=False, output=output)
        return RenderResult(ok=True, output=output)

    async def probe_duration(self, path: Path) -> float | None:
        def _probe() -> float:
            clip = AudioFileClip(str(path))
            try:
                return clip.duration
            finally:
                clip.close()

        try:
            return await asyncio.to_thread(_probe)
        except Exception as e:
            logger.warning(f"Durée illisible pour {path} : {e}")
            return None

    # ── Construction des commandes ──

    def _text_card_command(self, req: TextCardRequest) -> list[str]:
        filters = []
        for line in req.lines:
            if not line.text:
                # drawtext refuse un texte vide : la ligne reste simplement vide
                continue
            filters.append(
                f"drawtext=fontfile={line.font_file}"
                f":text={_quote_filter_value(escape_drawtext(line.text))}"
                f":fontcolor={req.font_color}:fontsize={line.font_size}"
                f":x=(w-text_w)/2:y=(h-text_h)/2{line.y_offset:+d}"
            )
        cmd = [
            self.binary, "-y",
            "-f", "lavfi", "-i", f"color=c={req.background}:s={req.width}x{req.height}",
        ]
        if filters:
            cmd += ["-vf", ",".join(filters)]
        cmd += ["-frames:v", "1", str(req.output_path)]
        return cmd

    def _segment_command(self, req: SegmentRequest) -> list[str]:
        graph = (
            f"[0:v]{_fit_canvas(req.width, req.height)},"
            f"fade=in:0:{req.fade_in_frames},format=yuv420p"
        )
        return [
            self.binary, "-y",
            "-loop", "1", "-i", str(req.source),
            "-filter_complex", graph,
            "-t", _num(req.duration),
            "-c:v", req.codec, "-preset", req.preset,
            "-r", str(req.fps),
            str(req.output_path),
        ]

    def _concat_command(self, req: ConcatRequest) -> list[str]:
        return [
            self.binary, "-y",
            "-f", "concat", "-safe", "0", "-i", str(req.manifest_path),
            "-vf", f"fps={req.fps},{_fit_canvas(req.width, req.height)},format=yuv420p",
            "-c:v", req.codec, "-preset", req.preset,
            "-pix_fmt", "yuv420p", "-r", str(req.fps),
            "-an",
            str(req.output_path),
        ]

    def _audio_mix_command(self, req: AudioMixRequest) -> list[str]:
        cmd = [self.binary, "-y"]
        chains = []
        for idx, audio in enumerate(req.inputs):
            cmd += ["-i", str(audio.path)]
            steps = [f"volume={_num(audio.volume)}"]
            if audio.delay_ms:
                steps.append(f"adelay={audio.delay_ms}|{audio.delay_ms}")
            if audio.fade_out_start is not None and audio.fade_duration > 0:
                steps.append(f"afade=t=out:st={_num(audio.fade_out_start)}:d={_num(audio.fade_duration)}")
            chains.append(f"[{idx}:a]{','.join(steps)}[a{idx}]")

        labels = "".join(f"[a{idx}]" for idx in range(len(req.inputs)))
        if len(req.inputs) > 1:
            final = f"{labels}amix=inputs={len(req.inputs)}:duration=longest,volume={_num(req.master_volume)}[out]"
        else:
            final = f"{labels}volume={_num(req.master_volume)}[out]"
        chains.append(final)

        cmd += [
            "-filter_complex", ";".join(chains),
            "-map", "[out]",
            "-c:a", "libmp3lame",
            str(req.output_path),
        ]
        return cmd

    def _mux_command(self, req: MuxRequest) -> list[str]:
        return [
            self.binary, "-y",
            "-i", str(req.video_path),
            "-i", str(req.audio_path),
            "-map", "0:v", "-map", "1:a",
            "-c:v", "copy",
            "-c:a", "aac", "-b:a", req.audio_bitrate,
            "-shortest",
            str(req.output_path),
        ]
