from datetime import datetime
from pydantic import BaseModel, Field


class VideoCreate(BaseModel):
    address: str = ""
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    price: str = ""
    description: str | None = None
    contact_name: str = ""
    contact_phone: str | None = None
    contact_email: str | None = None
    music_track: str = "upbeat-modern-home"
    slide_duration: int = Field(default=5, ge=1)
    transition_type: str = "fade"  # "fade", "slide", "zoom", "dissolve" (cosmétique)
    show_price: bool = True
    voice_id: str | None = None


class VideoUpdate(BaseModel):
    address: str | None = None
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    price: str | None = None
    description: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    music_track: str | None = None
    slide_duration: int | None = Field(default=None, ge=1)
    transition_type: str | None = None
    show_price: bool | None = None
    voice_id: str | None = None


class VideoResponse(BaseModel):
    id: int
    status: str
    address: str
    street_address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    price: str
    description: str | None
    contact_name: str
    contact_phone: str | None
    contact_email: str | None
    music_track: str
    slide_duration: int
    transition_type: str
    show_price: bool
    voice_id: str | None
    video_url: str | None
    narration_url: str | None
    ai_description: str | None
    error_message: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VideoStatusResponse(BaseModel):
    id: int
    status: str
    video_url: str | None = None
    narration_url: str | None = None
    error: str | None = None


class MusicTrack(BaseModel):
    id: str
    name: str
    description: str
    duration: str
    available: bool
