from typing import Literal

from pydantic import BaseModel, Field


class ValidationRules(BaseModel):
    title_min_length: int = 5
    body_min_length: int = 50
    min_tags: int = 1
    require_cover_on_create: bool = True

class UploadsRules(BaseModel):
    max_upload_bytes: int = 10_000_000
    allowlist_mime_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp", "image/gif"]
    )

class StorageRules(BaseModel):
    inline_image_prefix: str = "post_images"
    cover_image_prefix: str = "post_cover_images"
    public_base_url: str = "http://localhost:8000/storage"

class FanoutRules(BaseModel):
    chunk_size: int = Field(default=500, ge=1)
    # background: publish returns before notifications are committed
    mode: Literal["background", "await"] = "background"

class PipelineRules(BaseModel):
    validation: ValidationRules = Field(default_factory=ValidationRules)
    uploads: UploadsRules = Field(default_factory=UploadsRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    fanout: FanoutRules = Field(default_factory=FanoutRules)
