from dataclasses import dataclass

from property_video.services.slide_plan import SlidePlan

MUSIC_VOLUME_UNDER_NARRATION = 0.13
MUSIC_VOLUME_ALONE = 0.1
NARRATION_VOLUME = 2.0
MIX_MASTER_VOLUME = 2.0


@dataclass(frozen=True)
class AudioMixPlan:
    total_duration: float
    narration_delay: float
    music_fade_start: float
    music_fade_duration: float
    has_music: bool
    has_narration: bool
    music_volume: float
    narration_volume: float
    master_volume: float

    @property
    def narration_delay_ms(self) -> int:
        return int(round(self.narration_delay * 1000))

    @property
    def has_audio(self) -> bool:
        return self.has_music or self.has_narration


def plan_audio_mix(
    plan: SlidePlan,
    has_music: bool,
    has_narration: bool,
    fade_seconds: float = 3,
) -> AudioMixPlan:
    """Calcule les temps du mixage audio à partir des durées de slides.

    La narration démarre à la fin de la slide titre ; la musique fond sur
    ses `fade_seconds` dernières secondes.
    """
    total = float(plan.total_duration)
    if has_narration:
        music_volume = MUSIC_VOLUME_UNDER_NARRATION
        master_volume = MIX_MASTER_VOLUME if has_music else 1.0
    else:
        music_volume = MUSIC_VOLUME_ALONE
        master_volume = 1.0

    return AudioMixPlan(
        total_duration=total,
        narration_delay=float(plan.title.duration),
        music_fade_start=max(0.0, total - fade_seconds),
        music_fade_duration=float(fade_seconds),
        has_music=has_music,
        has_narration=has_narration,
        music_volume=music_volume,
        narration_volume=NARRATION_VOLUME if has_narration else 1.0,
        master_volume=master_volume,
    )
