"""Textes affichés sur les slides : échappement drawtext, adresse, prix."""

import re

DEFAULT_STREET = "Beautiful Property"

_NON_NUMERIC = re.compile(r"[^0-9.]")


def escape_drawtext(text: str) -> str:
    """Échappe un texte pour l'option text= du filtre drawtext de FFmpeg.

    L'antislash est traité en premier pour ne pas ré-échapper les
    antislashs ajoutés par les remplacements suivants.
    """
    return (
        text.replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace(",", "\\,")
    )


def format_price(raw: str | None) -> str:
    """Formate un prix libre ("$1,250,000", "450000.00"...) avec séparateurs de milliers."""
    if not raw:
        return ""
    digits = _NON_NUMERIC.sub("", str(raw))
    if not digits:
        return ""
    try:
        value = float(digits)
    except ValueError:
        return ""

    if value >= 1_000_000:
        # Regroupement manuel millions / milliers / unités
        millions = int(value // 1_000_000)
        thousands = int((value % 1_000_000) // 1000)
        ones = int(value % 1000)
        return f"{millions:,},{thousands:03d},{ones:03d}"
    return f"{value:,.0f}"


def street_address(video) -> str:
    if video.street_address:
        return video.street_address
    if video.address and "," in video.address:
        return video.address.split(",", 1)[0].strip()
    return video.address or DEFAULT_STREET


def city_state_zip(video) -> str:
    parts = [p for p in (video.city, video.state, video.zip_code) if p]
    if parts:
        return ", ".join(parts)
    if video.address and "," in video.address:
        return video.address.split(",", 1)[1].strip()
    return ""


def full_address(video) -> str:
    """Adresse complète sur une ligne, pour le prompt de description."""
    if video.street_address and (video.city or video.state or video.zip_code):
        return f"{video.street_address}, {city_state_zip(video)}"
    return video.address or street_address(video)
