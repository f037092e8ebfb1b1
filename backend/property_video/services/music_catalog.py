from pathlib import Path

from property_video.config import Settings, settings as default_settings

MUSIC_TRACKS = [
    {"id": "upbeat-modern-home", "name": "Upbeat Modern Home",
     "description": "Positive and inspiring electronic soundtrack", "duration": "2:15"},
    {"id": "elegant-estate", "name": "Elegant Estate",
     "description": "Calm piano melody with soft strings", "duration": "1:55"},
    {"id": "luxury-living", "name": "Luxury Living",
     "description": "Sophisticated jazz with modern influences", "duration": "2:30"},
    {"id": "modern-minimalist", "name": "Modern Minimalist",
     "description": "Clean ambient sounds with subtle beats", "duration": "2:05"},
    {"id": "warm-welcome", "name": "Warm Welcome",
     "description": "Friendly acoustic guitar with light percussion", "duration": "1:45"},
]


def music_path(track_id: str | None, settings: Settings = default_settings) -> Path:
    track = track_id or settings.DEFAULT_MUSIC_TRACK
    # Le nom de piste vient du client : on ne garde que le nom de fichier
    return Path(settings.MUSIC_DIR) / f"{Path(track).name}.mp3"


def list_tracks(settings: Settings = default_settings) -> list[dict]:
    return [
        {**track, "available": music_path(track["id"], settings).is_file()}
        for track in MUSIC_TRACKS
    ]
