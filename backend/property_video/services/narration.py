import logging
import time
from dataclasses import dataclass
from pathlib import Path

import aiofiles
from elevenlabs.client import AsyncElevenLabs
from openai import AsyncOpenAI

from property_video.config import Settings, settings as default_settings
from property_video.errors import NarrationError
from property_video.services.formatting import full_address
from property_video.services.job_logger import emit

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert real estate agent specializing in writing compelling property descriptions. "
    "Write a professional and engaging 30-45 second narration script for a real estate video. "
    "Focus on the property's key selling points, the neighborhood, and unique features. "
    "Do not include the price in the description as it will be shown separately. "
    "Do not include any contact information in the description. "
    "Keep the description concise, between 80-100 words. "
    "When you speak numbers, speak each digit one at a time "
    "(for example 12003 is read one, two, zero, zero, three)."
)

DEFAULT_DESCRIPTION = "Welcome to this beautiful property."


@dataclass(frozen=True)
class Narration:
    description: str
    audio_url: str


class Narrator:
    """Description OpenAI + synthèse vocale ElevenLabs.

    Toute erreur (clé absente, API en échec, écriture disque) est levée en
    NarrationError : l'orchestrateur bascule alors sur un rendu sans narration.
    """

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    async def narrate(self, video) -> Narration:
        description = await self.generate_description(video)
        audio_url = await self.synthesize_speech(description, video.id, video.voice_id)
        return Narration(description=description, audio_url=audio_url)

    async def generate_description(self, video) -> str:
        if not self.settings.OPENAI_API_KEY:
            raise NarrationError("OPENAI_API_KEY is not configured")

        client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY)
        emit(video.id, "openai", "info", f"Génération de la description — modèle: {self.settings.OPENAI_MODEL}")

        user_prompt = (
            "Create a brief professional narration for this property:\n"
            f"Address: {full_address(video)}\n"
            f"Price: {video.price}\n"
        )
        if video.description:
            user_prompt += f"Owner's description: {video.description}\n"
        user_prompt += (
            "Remember: the script should be 30-45 seconds when read aloud (80-100 words). "
            "Be conversational, brief, and professional. Focus on just 2-3 key features."
        )

        try:
            response = await client.chat.completions.create(
                model=self.settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.7,
                max_tokens=250,
            )
            text = (response.choices[0].message.content or "").strip()
        except Exception as e:
            raise NarrationError(f"Description generation failed: {e}") from e

        emit(video.id, "openai", "success", f"Description générée ({len(text)} caractères)")
        return text or DEFAULT_DESCRIPTION

    async def synthesize_speech(self, text: str, video_id: int, voice_id: str | None = None) -> str:
        """Génère le fichier audio de narration et retourne son URL (/audio/...)."""
        if not self.settings.ELEVENLABS_API_KEY:
            raise NarrationError("ELEVENLABS_API_KEY is not configured")
        voice = voice_id or self.settings.ELEVENLABS_VOICE_ID
        if not voice:
            raise NarrationError("No ElevenLabs voice configured")

        client = AsyncElevenLabs(api_key=self.settings.ELEVENLABS_API_KEY)
        emit(video_id, "elevenlabs", "info",
             f"Appel TTS — modèle: {self.settings.ELEVENLABS_MODEL_ID}, voice: {voice}, format: mp3_44100_128")

        audio_dir = Path(self.settings.AUDIO_DIR)
        filename = f"narration-{video_id}-{int(time.time() * 1000)}.mp3"
        output_path = audio_dir / filename

        try:
            audio_dir.mkdir(parents=True, exist_ok=True)
            audio = client.text_to_speech.convert(
                text=text,
                voice_id=voice,
                model_id=self.settings.ELEVENLABS_MODEL_ID,
                output_format="mp3_44100_128",
            )
            async with aiofiles.open(output_path, "wb") as f:
                async for chunk in audio:
                    await f.write(chunk)
        except Exception as e:
            if output_path.exists():
                output_path.unlink()
            raise NarrationError(f"Speech synthesis failed: {e}") from e

        emit(video_id, "elevenlabs", "success", f"Narration sauvegardée → {output_path}")
        return f"/audio/{filename}"
