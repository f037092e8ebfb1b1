"""Erreurs métier du pipeline de génération vidéo."""


class PropertyVideoError(Exception):
    pass


class ValidationError(PropertyVideoError):
    """Entrée invalide : remontée immédiatement à l'appelant, état du job inchangé."""


class NoPhotosError(ValidationError):
    def __init__(self, video_id: int):
        super().__init__(f"No photos found for video {video_id}")
        self.video_id = video_id


class GenerationInProgressError(ValidationError):
    def __init__(self, video_id: int):
        super().__init__(f"Video {video_id} is already being generated")
        self.video_id = video_id


class NotFoundError(PropertyVideoError):
    pass


class NarrationError(PropertyVideoError):
    """Fournisseur de narration indisponible ou en échec (jamais fatal au job)."""


class RenderError(PropertyVideoError):
    def __init__(self, stage: str, detail: str = ""):
        message = f"FFmpeg failed for {stage}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.stage = stage
        self.detail = detail
