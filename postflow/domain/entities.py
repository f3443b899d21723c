from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
EditorMode = Literal["rich", "lite"]
PublishMode = Literal["create", "edit"]
NotificationType = Literal["NEW_POST"]


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_notification_id() -> str:
    return str(uuid4())


# --- Identity ---

class IdentitySnapshot(BaseModel):
    user_id: str
    name: str = ""
    username: str = ""
    avatar: str = ""

# --- Drafts ---

class ImageFile(BaseModel):
    filename: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)

class DraftPost(BaseModel):
    title: str = ""
    body: str = ""
    mode: EditorMode = "rich"
    tags: list[str] = Field(default_factory=list)

    # At most one of these is meaningful: a freshly picked file wins over a kept URL
    cover_file: ImageFile | None = None
    cover_url: str | None = None

    post_id: str | None = None  # None while creating

# --- Posts ---

class PostDocument(BaseModel):
    title: str
    content: str  # canonical rich body
    tags: list[str]
    tags_lower: list[str]
    title_for_search: list[str] = Field(default_factory=list)

    author_id: str
    author_name: str = ""
    author_username: str = ""
    author_avatar: str = ""

    cover_image: str = ""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    total_reads: int = 0
    likes: list[str] = Field(default_factory=list)
    bookmarks: list[str] = Field(default_factory=list)

class PublishedPost(PostDocument):
    id: str

    def document(self) -> PostDocument:
        return PostDocument.model_validate(self.model_dump(exclude={"id"}))

# --- Notifications ---

class NotificationDetails(BaseModel):
    post_id: str
    post_cover_photo: str = ""
    post_title: str
    post_author_avatar: str = ""
    post_author_name: str = ""
    post_author_username: str = ""

class NotificationRecord(BaseModel):
    notification_id: str = Field(default_factory=new_notification_id)
    receiver_id: str
    sender_id: str
    notification_type: NotificationType = "NEW_POST"
    read_status: bool = False
    sender_details: IdentitySnapshot
    receiver_details: IdentitySnapshot
    notification_details: NotificationDetails
    created_at: datetime = Field(default_factory=utcnow)
