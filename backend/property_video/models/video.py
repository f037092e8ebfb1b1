from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, String, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from property_video.models.base import Base


class VideoStatus(str, Enum):
    # pending → processing → completed / error / cancelled
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


class PropertyVideo(Base):
    __tablename__ = "property_videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(String(20), default=VideoStatus.PENDING.value)

    # Adresse : champs structurés + adresse complète (legacy)
    address: Mapped[str] = mapped_column(String(500), default="")
    street_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(60), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price: Mapped[str] = mapped_column(String(60), default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    contact_name: Mapped[str] = mapped_column(String(255), default="")
    contact_phone: Mapped[str | None] = mapped_column(String(60), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Paramètres de génération
    music_track: Mapped[str] = mapped_column(String(100), default="upbeat-modern-home")
    slide_duration: Mapped[int] = mapped_column(Integer, default=5)
    transition_type: Mapped[str] = mapped_column(String(20), default="fade")
    show_price: Mapped[bool] = mapped_column(Boolean, default=True)
    voice_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Sorties
    video_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    narration_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ai_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    photos: Mapped[list["PropertyPhoto"]] = relationship(
        "PropertyPhoto", back_populates="video", cascade="all, delete-orphan"
    )
