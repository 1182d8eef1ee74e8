from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserCreate(BaseModel):
    """Self-provisioning request. Email and external id come from the token."""

    username: str | None = Field(None, max_length=100)
    fullname: str | None = Field(None, max_length=200)
    image: str | None = Field(None, max_length=1000)
    bio: str | None = Field(None, max_length=1000)


class UserUpdate(BaseModel):
    """Profile edit request."""

    fullname: str | None = Field(None, max_length=200)
    bio: str | None = Field(None, max_length=1000)


class UserProfile(BaseModel):
    """Public user profile."""

    id: int
    username: str
    fullname: str
    bio: str | None = None
    image: str
    followers: int
    following: int
    posts: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CurrentUser(UserProfile):
    """Profile of the authenticated caller, including private fields."""

    email: str
    external_id: str


class AuthorSummary(BaseModel):
    """Author projection shown next to posts and notifications."""

    id: int
    username: str
    image: str

    model_config = ConfigDict(from_attributes=True)


class IsFollowingResponse(BaseModel):
    following: bool


class FollowToggleResponse(BaseModel):
    following: bool


# ============================================================================
# POST SCHEMAS
# ============================================================================


class PostCreate(BaseModel):
    """Create post request."""

    storage_id: str = Field(..., min_length=1, max_length=64)
    caption: str | None = Field(None, max_length=2200)


class Post(BaseModel):
    """Image post."""

    id: int
    user_id: int
    image_url: str
    caption: str | None = None
    likes: int
    comments: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class FeedPost(Post):
    """Post as seen by a viewer in the feed."""

    author: AuthorSummary | None = None
    liked: bool = False
    bookmarked: bool = False


class UploadUrlResponse(BaseModel):
    upload_url: str


class UploadResponse(BaseModel):
    storage_id: str


class LikeToggleResponse(BaseModel):
    liked: bool


class BookmarkToggleResponse(BaseModel):
    bookmarked: bool


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class CommentCreate(BaseModel):
    """Create comment request."""

    content: str = Field(..., min_length=1, max_length=2000)


class CommentAuthor(BaseModel):
    """Author projection on comments, resolved at read time."""

    fullname: str
    image: str

    model_config = ConfigDict(from_attributes=True)


class Comment(BaseModel):
    """Comment on a post."""

    id: int
    user_id: int
    post_id: int
    content: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CommentWithAuthor(Comment):
    user: CommentAuthor | None = None


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================


class NotificationPost(BaseModel):
    id: int
    image_url: str

    model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
    """Activity notification."""

    id: int
    receiver_id: int
    sender_id: int
    type: Literal["like", "comment", "follow"]
    post_id: int | None = None
    comment_id: int | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationWithContext(Notification):
    sender: AuthorSummary | None = None
    post: NotificationPost | None = None
    comment: str | None = None  # Comment text for comment notifications
