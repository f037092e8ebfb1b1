import logging
from datetime import datetime
from pathlib import Path

from property_video.services.job_logger import emit

logger = logging.getLogger(__name__)


class RenderWorkspace:
    """Dossier temporaire d'une tentative de rendu.

    Chaque fichier intermédiaire est enregistré via `track()` avant d'être
    produit ; `cleanup()` les supprime une seule fois, que le rendu ait
    réussi ou non. Les échecs de suppression sont seulement loggés.
    """

    def __init__(self, temp_root: Path, video_id: int):
        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
        self.directory = Path(temp_root) / f"video-{video_id}-{stamp}"
        self.video_id = video_id
        self._artifacts: list[Path] = []
        self._cleaned = False

    def __enter__(self) -> "RenderWorkspace":
        self.directory.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def artifacts(self) -> list[Path]:
        return list(self._artifacts)

    def track(self, name: str) -> Path:
        path = self.directory / name
        self._artifacts.append(path)
        return path

    def cleanup(self) -> int:
        """Supprime les fichiers suivis puis le dossier. Retourne le nombre de fichiers supprimés."""
        if self._cleaned:
            return 0
        self._cleaned = True

        removed = 0
        for path in self._artifacts:
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning(f"[{self.video_id}] Suppression impossible : {path} ({e})")

        try:
            if self.directory.exists():
                self.directory.rmdir()
        except OSError as e:
            logger.warning(f"[{self.video_id}] Dossier temporaire non supprimé : {self.directory} ({e})")

        emit(self.video_id, "cleanup", "info", f"Nettoyage : {removed} fichier(s) temporaire(s) supprimé(s)")
        return removed
