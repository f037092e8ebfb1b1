import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from property_video.errors import NoPhotosError
from property_video.services.formatting import city_state_zip, format_price, street_address

logger = logging.getLogger(__name__)

CONTACT_TITLE = "Contact Information"


class SlideKind(str, Enum):
    TITLE = "title"
    PHOTO = "photo"
    CONTACT = "contact"


@dataclass(frozen=True)
class SlideUnit:
    kind: SlideKind
    duration: int
    # Photo : fichier source. Title/Contact : lignes de texte à incruster.
    source: Path | None = None
    lines: tuple[str, ...] = ()
    photo_id: int | None = None
    label: str = ""


@dataclass
class SlidePlan:
    units: list[SlideUnit]
    warnings: list[str] = field(default_factory=list)

    @property
    def title(self) -> SlideUnit:
        return self.units[0]

    @property
    def contact(self) -> SlideUnit:
        return self.units[-1]

    @property
    def photos(self) -> list[SlideUnit]:
        return [u for u in self.units if u.kind == SlideKind.PHOTO]

    @property
    def total_duration(self) -> int:
        return sum(u.duration for u in self.units)


def title_lines(video) -> tuple[str, str, str]:
    price = ""
    if video.show_price:
        formatted = format_price(video.price)
        if formatted:
            price = f"${formatted}"
    return street_address(video), city_state_zip(video), price


def contact_lines(video) -> tuple[str, str, str, str]:
    return (
        CONTACT_TITLE,
        video.contact_name or "",
        video.contact_phone or "",
        video.contact_email or "",
    )


def build_slide_plan(video, photos: list, upload_dir: Path, contact_duration: int = 8) -> SlidePlan:
    """Calcule la séquence Title → Photos (par ordre croissant) → Contact.

    Les photos absentes du disque sont ignorées avec un avertissement.
    """
    if not photos:
        raise NoPhotosError(video.id)

    duration = max(1, int(video.slide_duration or 1))
    units = [SlideUnit(kind=SlideKind.TITLE, duration=duration, lines=title_lines(video), label="title slide")]
    warnings = []

    ordered = sorted(photos, key=lambda p: (p.order, p.id))
    for position, photo in enumerate(ordered, 1):
        path = Path(upload_dir) / photo.stored_name
        if not path.exists():
            message = f"Photo file not found, skipped: {photo.original_name} ({path})"
            logger.warning(f"[{video.id}] {message}")
            warnings.append(message)
            continue
        units.append(
            SlideUnit(
                kind=SlideKind.PHOTO,
                duration=duration,
                source=path,
                photo_id=photo.id,
                label=f"photo segment {position}",
            )
        )

    units.append(
        SlideUnit(
            kind=SlideKind.CONTACT,
            duration=contact_duration,
            lines=contact_lines(video),
            label="contact slide",
        )
    )
    return SlidePlan(units=units, warnings=warnings)
