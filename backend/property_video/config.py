from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_ENV: str = "development"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    FRONTEND_URL: str = "http://localhost:5173"
    API_KEY: str = ""
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/app.db"

    # Narration
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_VOICE_ID: str = ""
    ELEVENLABS_MODEL_ID: str = "eleven_multilingual_v2"

    # Répertoires (servis en statique)
    UPLOAD_DIR: str = "uploads"
    MUSIC_DIR: str = "public/music"
    AUDIO_DIR: str = "public/audio"
    VIDEO_DIR: str = "public/videos"
    TEMP_DIR: str = "temp"

    # Vidéo output
    VIDEO_WIDTH: int = 1920
    VIDEO_HEIGHT: int = 1080
    VIDEO_FPS: int = 24
    VIDEO_CODEC: str = "libx264"
    VIDEO_PRESET: str = "fast"
    AUDIO_BITRATE: str = "256k"
    FFMPEG_BINARY: str = ""  # vide = binaire résolu par moviepy
    FFMPEG_TIMEOUT: int = 600

    FONT_BOLD: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"
    FONT_REGULAR: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
    FONT_MONO: str = "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf"

    # Montage
    DEFAULT_MUSIC_TRACK: str = "upbeat-modern-home"
    CONTACT_SLIDE_DURATION: int = 8
    MUSIC_FADE_SECONDS: int = 3
    MAX_PHOTOS: int = 12

    class Config:
        env_file = ".env"


settings = Settings()
