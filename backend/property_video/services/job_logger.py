"""Logs temps réel du pipeline par vidéo, basé sur asyncio.Queue (pub/sub in-memory)."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Literal

ServiceName = Literal["openai", "elevenlabs", "ffmpeg", "pipeline", "cleanup"]
LogLevel = Literal["info", "success", "warning", "error"]

logger = logging.getLogger(__name__)

_LEVELS = {"info": logging.INFO, "success": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}

# Subscribers : video_id → liste de queues SSE
_subscribers: dict[int, list[asyncio.Queue]] = {}


def emit(video_id: int, service: ServiceName, level: LogLevel, message: str) -> dict:
    """Émet un log vers tous les clients SSE abonnés à cette vidéo."""
    entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "service": service,
        "level": level,
        "message": message,
    }
    logger.log(_LEVELS[level], f"[{video_id}] {service}: {message}")
    for q in _subscribers.get(video_id, []):
        try:
            q.put_nowait(entry)
        except asyncio.QueueFull:
            pass  # Drop si le client est trop lent
    return entry


def subscribe(video_id: int) -> asyncio.Queue:
    """Crée une queue et l'abonne aux logs de la vidéo."""
    q: asyncio.Queue = asyncio.Queue(maxsize=500)
    _subscribers.setdefault(video_id, []).append(q)
    return q


def unsubscribe(video_id: int, q: asyncio.Queue) -> None:
    """Retire une queue de la liste des abonnés."""
    queues = _subscribers.get(video_id, [])
    try:
        queues.remove(q)
    except ValueError:
        pass
    if not queues:
        _subscribers.pop(video_id, None)


def format_sse(entry: dict) -> str:
    """Formate un LogEntry en message SSE."""
    return f"data: {json.dumps(entry)}\n\n"
