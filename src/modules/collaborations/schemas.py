"""Collaboration schemas - request and response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.models import NaiveUTCDatetime
from src.modules.collaborations.models import (
    ChangeType,
    CollaborationInDB,
    CollaborationSettings,
    CollaborationStats,
    CollaborationType,
    Collaborator,
    Comment,
    JoinRequest,
    PendingInvite,
    Version,
)


class SettingsInput(BaseModel):
    """Partial settings supplied by clients."""

    is_public: bool | None = None
    allow_forks: bool | None = None
    require_approval: bool | None = None
    max_collaborators: int | None = Field(default=None, ge=2, le=50)
    allow_anonymous: bool | None = None
    deadline: NaiveUTCDatetime | None = None

    def as_update(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CollaborationCreate(BaseModel):
    """Schema for creating a new collaboration."""

    title: str
    description: str | None = None
    type: CollaborationType = "collaboration"
    original_meme: str | None = None
    settings: SettingsInput = Field(default_factory=SettingsInput)
    tags: list[str] = Field(default_factory=list)


class CollaborationFromTemplate(BaseModel):
    """Schema for creating a collaboration from a built-in template."""

    template_id: str
    title: str
    description: str | None = None
    original_meme: str | None = None
    settings: SettingsInput = Field(default_factory=SettingsInput)
    tags: list[str] | None = None


class CollaborationUpdate(BaseModel):
    """Schema for updating title, description, tags or settings."""

    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    settings: SettingsInput | None = None


class InviteCreate(BaseModel):
    """Invite a user by id or username."""

    user_id: str | None = None
    username: str | None = None
    role: str = "contributor"
    message: str | None = None

    @model_validator(mode="after")
    def check_target(self) -> "InviteCreate":
        if not self.user_id and not self.username:
            raise ValueError("Provide user_id or username")
        return self


class JoinCreate(BaseModel):
    message: str | None = None


class ApproveRequest(BaseModel):
    role: str = "contributor"


class RoleUpdate(BaseModel):
    role: str


class ChangeInput(BaseModel):
    type: ChangeType
    description: str = ""
    previous_value: Any = None
    new_value: Any = None


class VersionCreate(BaseModel):
    title: str
    description: str | None = None
    meme_id: str | None = None
    changes: list[ChangeInput] = Field(default_factory=list)


class CommentCreate(BaseModel):
    content: str
    author_name: str | None = None
    version_number: int | None = Field(default=None, ge=1)
    element_id: str | None = None


class ForkCreate(BaseModel):
    title: str | None = None


class CollaborationResponse(BaseModel):
    """Full view of a collaboration."""

    id: str
    title: str
    description: str
    type: CollaborationType
    owner_id: str
    original_meme: str | None = None
    parent_collaboration: str | None = None
    template_id: str | None = None
    collaborators: list[Collaborator] = []
    pending_invites: list[PendingInvite] = []
    join_requests: list[JoinRequest] = []
    versions: list[Version] = []
    comments: list[Comment] = []
    settings: CollaborationSettings
    stats: CollaborationStats
    tags: list[str] = []
    revision: int
    is_active: bool = True
    user_role: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "60b8d545f1d2a12345678901",
                "title": "Distracted boyfriend, but cats",
                "description": "",
                "type": "remix",
                "owner_id": "60b8d545f1d2a12345678902",
                "original_meme": "60b8d545f1d2a12345678999",
                "collaborators": [
                    {"user_id": "60b8d545f1d2a12345678903", "role": "editor"}
                ],
                "revision": 3,
                "created_at": "2024-05-20T10:00:00",
                "updated_at": "2024-05-21T10:00:00",
            }
        },
    )

    @classmethod
    def from_model(
        cls,
        collab: CollaborationInDB,
        user_role: str | None = None,
        is_active: bool = True,
    ) -> "CollaborationResponse":
        return cls(
            **collab.model_dump(),
            user_role=user_role,
            is_active=is_active,
        )


class CollaborationSummary(BaseModel):
    """List entry without the history arrays."""

    id: str
    title: str
    description: str
    type: CollaborationType
    owner_id: str
    original_meme: str | None = None
    parent_collaboration: str | None = None
    settings: CollaborationSettings
    stats: CollaborationStats
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, collab: CollaborationInDB) -> "CollaborationSummary":
        return cls(**collab.model_dump())


class CollaborationPage(BaseModel):
    items: list[CollaborationSummary]
    total: int
    page: int
    total_pages: int


class PendingInviteView(BaseModel):
    """A pending invite as seen by the invited user."""

    collaboration_id: str
    collaboration_title: str
    role: str
    invited_by: str
    invited_at: datetime
    expires_at: datetime
    message: str = ""


class JoinResult(BaseModel):
    status: str
    collaboration: CollaborationResponse


class MergeResult(BaseModel):
    merged_versions: list[Version]
    collaboration: CollaborationResponse


class VersionResult(BaseModel):
    version: Version
    collaboration: CollaborationResponse


class CommentResult(BaseModel):
    comment: Comment
    collaboration: CollaborationResponse
