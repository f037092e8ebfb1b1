from datetime import datetime
from pydantic import BaseModel


class PhotoResponse(BaseModel):
    id: int
    video_id: int
    original_name: str
    stored_name: str
    order: int
    is_cover: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PhotoOrderUpdate(BaseModel):
    order: int


class PhotoCoverUpdate(BaseModel):
    is_cover: bool
