import os
import tempfile
from pathlib import Path

import pytest

# La config est lue à l'import : on isole la DB et les répertoires avant tout import du package
_ROOT = Path(tempfile.mkdtemp(prefix="property-video-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_ROOT / 'app.db'}"
os.environ["UPLOAD_DIR"] = str(_ROOT / "uploads")
os.environ["MUSIC_DIR"] = str(_ROOT / "music")
os.environ["AUDIO_DIR"] = str(_ROOT / "audio")
os.environ["VIDEO_DIR"] = str(_ROOT / "videos")
os.environ["TEMP_DIR"] = str(_ROOT / "temp")
os.environ["OPENAI_API_KEY"] = ""
os.environ["ELEVENLABS_API_KEY"] = ""
os.environ["API_KEY"] = ""

from property_video.config import Settings  # noqa: E402


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    s = Settings(
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MUSIC_DIR=str(tmp_path / "music"),
        AUDIO_DIR=str(tmp_path / "audio"),
        VIDEO_DIR=str(tmp_path / "videos"),
        TEMP_DIR=str(tmp_path / "temp"),
        FFMPEG_BINARY="ffmpeg",
        OPENAI_API_KEY="",
        ELEVENLABS_API_KEY="",
    )
    for d in (s.UPLOAD_DIR, s.MUSIC_DIR, s.AUDIO_DIR, s.VIDEO_DIR, s.TEMP_DIR):
        Path(d).mkdir(parents=True, exist_ok=True)
    return s
