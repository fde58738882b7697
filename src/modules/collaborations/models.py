"""Collaboration aggregate as stored in MongoDB."""

from datetime import datetime
from typing import Any, Literal, get_args

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from src.core.config import settings
from src.core.models import NaiveUTCDatetime, PyObjectId, utcnow

CollaborationType = Literal["collaboration", "remix", "template_creation"]
Role = Literal["owner", "editor", "contributor", "viewer"]
MemberRole = Literal["editor", "contributor", "viewer"]
ChangeType = Literal[
    "text_edit", "image_edit", "element_add", "element_remove", "style_change"
]

COLLABORATION_TYPES: tuple[str, ...] = get_args(CollaborationType)
ROLES: tuple[str, ...] = get_args(Role)
MEMBER_ROLES: tuple[str, ...] = get_args(MemberRole)
CHANGE_TYPES: tuple[str, ...] = get_args(ChangeType)


class Collaborator(BaseModel):
    """A member other than the owner."""

    user_id: str
    role: MemberRole = "contributor"
    joined_at: datetime = Field(default_factory=utcnow)
    contribution_score: int = 0
    last_active: datetime = Field(default_factory=utcnow)


class PendingInvite(BaseModel):
    """An unresolved offer of membership."""

    user_id: str
    role: MemberRole = "contributor"
    invited_by: str
    invited_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    message: str = ""


class JoinRequest(BaseModel):
    """A request to join a collaboration that requires approval."""

    user_id: str
    message: str = ""
    requested_at: datetime = Field(default_factory=utcnow)


class Change(BaseModel):
    """One edit described by a version."""

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    description: str = ""
    previous_value: Any = None
    new_value: Any = None


class Version(BaseModel):
    """Append-only history entry."""

    id: str
    number: int
    author_id: str
    title: str
    description: str = ""
    meme_id: str | None = None
    changes: list[Change] = Field(default_factory=list)
    approved: bool = True
    approved_by: str | None = None
    approved_at: datetime | None = None
    merged_from: str | None = None
    source_version_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Comment(BaseModel):
    """Discussion entry; anonymous comments carry no author id."""

    id: str
    author_id: str | None = None
    author_name: str | None = None
    is_anonymous: bool = False
    content: str
    version_number: int | None = None
    element_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class CollaborationSettings(BaseModel):
    """Owner-controlled policy switches."""

    is_public: bool = True
    allow_forks: bool = True
    require_approval: bool = False
    max_collaborators: int = Field(
        default=settings.DEFAULT_MAX_COLLABORATORS, ge=2, le=50
    )
    allow_anonymous: bool = False
    deadline: NaiveUTCDatetime | None = None


class CollaborationStats(BaseModel):
    """Counters maintained on write; not authoritative."""

    total_versions: int = 0
    total_comments: int = 0
    total_contributors: int = 1
    total_views: int = 0
    total_likes: int = 0
    total_forks: int = 0


class CollaborationInDB(BaseModel):
    """Collaboration document as stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True)

    id: PyObjectId | None = Field(default=None, alias="_id")
    title: str
    description: str = ""
    type: CollaborationType
    owner_id: str
    original_meme: str | None = None
    parent_collaboration: str | None = None
    template_id: str | None = None
    collaborators: list[Collaborator] = Field(default_factory=list)
    pending_invites: list[PendingInvite] = Field(default_factory=list)
    join_requests: list[JoinRequest] = Field(default_factory=list)
    versions: list[Version] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    settings: CollaborationSettings = Field(default_factory=CollaborationSettings)
    stats: CollaborationStats = Field(default_factory=CollaborationStats)
    tags: list[str] = Field(default_factory=list)
    revision: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_collaborator(self, user_id: str) -> Collaborator | None:
        return next((c for c in self.collaborators if c.user_id == user_id), None)

    def find_invite(self, user_id: str) -> PendingInvite | None:
        return next((i for i in self.pending_invites if i.user_id == user_id), None)

    def find_join_request(self, user_id: str) -> JoinRequest | None:
        return next((r for r in self.join_requests if r.user_id == user_id), None)

    def find_version(self, version_id: str) -> Version | None:
        return next((v for v in self.versions if v.id == version_id), None)

    def to_mongo(self) -> dict:
        """Convert to MongoDB document format."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if data.get("_id"):
            data["_id"] = ObjectId(data["_id"])
        return data

    @classmethod
    def from_mongo(cls, doc: dict) -> "CollaborationInDB":
        """Create instance from MongoDB document."""
        return cls(**doc)
