"""Requêtes de rendu déclaratives, exécutées par un MediaEngine (FFmpeg en prod)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class TextLine:
    text: str
    font_file: str
    font_size: int
    y_offset: int = 0  # décalage vertical par rapport au centre


@dataclass(frozen=True)
class TextCardRequest:
    """Image fixe fond uni + lignes de texte centrées."""

    output_path: Path
    lines: tuple[TextLine, ...]
    width: int
    height: int
    background: str = "black"
    font_color: str = "white"


@dataclass(frozen=True)
class SegmentRequest:
    """Image → segment vidéo de durée fixe, fondu d'entrée uniquement."""

    source: Path
    output_path: Path
    duration: float
    fps: int
    width: int
    height: int
    fade_in_frames: int
    codec: str = "libx264"
    preset: str = "fast"


@dataclass(frozen=True)
class ConcatRequest:
    """Concaténation des segments (listés dans manifest_path) en un flux muet."""

    manifest_path: Path
    output_path: Path
    fps: int
    width: int
    height: int
    codec: str = "libx264"
    preset: str = "fast"


@dataclass(frozen=True)
class AudioInput:
    path: Path
    volume: float = 1.0
    delay_ms: int = 0
    fade_out_start: float | None = None
    fade_duration: float = 0.0


@dataclass(frozen=True)
class AudioMixRequest:
    inputs: tuple[AudioInput, ...]
    output_path: Path
    master_volume: float = 1.0


@dataclass(frozen=True)
class MuxRequest:
    """Associe la piste vidéo muette et la piste audio mixée."""

    video_path: Path
    audio_path: Path
    output_path: Path
    audio_bitrate: str = "256k"


RenderRequest = TextCardRequest | SegmentRequest | ConcatRequest | AudioMixRequest | MuxRequest


@dataclass(frozen=True)
class RenderResult:
    ok: bool
    output: str = ""


class MediaEngine(Protocol):
    async def run(self, request: RenderRequest) -> RenderResult: ...

    async def probe_duration(self, path: Path) -> float | None: ...
