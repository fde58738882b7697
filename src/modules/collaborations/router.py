"""Collaboration router - API endpoints.

Every success body is ``{"success": true, "data": ...}``. Mutating routes
honour an optional ``If-Match: <revision>`` header.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from src.core.dependencies import ExpectedRevision, MongoDB
from src.core.models import Envelope
from src.modules.auth.dependencies import CurrentPrincipal, OptionalPrincipal
from src.modules.collaborations import services, views
from src.modules.collaborations.dependencies import get_visible_collaboration
from src.modules.collaborations.models import CollaborationInDB, CollaborationType
from src.modules.collaborations.schemas import (
    ApproveRequest,
    CollaborationCreate,
    CollaborationFromTemplate,
    CollaborationPage,
    CollaborationResponse,
    CollaborationSummary,
    CollaborationUpdate,
    CommentCreate,
    CommentResult,
    ForkCreate,
    InviteCreate,
    JoinCreate,
    JoinResult,
    MergeResult,
    PendingInviteView,
    RoleUpdate,
    VersionCreate,
    VersionResult,
)
from src.modules.collaborations.templates import CollaborationTemplate, list_templates

router = APIRouter(prefix="/collaborations", tags=["collaborations"])


def ok(data) -> Envelope:
    return Envelope(data=data)


# Static paths first so they are not captured by "/{collaboration_id}".
@router.get("", response_model=Envelope[CollaborationPage])
async def list_public_collaborations(
    db: MongoDB,
    type: CollaborationType | None = None,
    search: str | None = Query(default=None, max_length=100),
    sort: Literal["recent", "active", "popular"] = "recent",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=50),
):
    """List public collaborations with filters and pagination."""
    return ok(
        await services.list_collaborations(
            db, type=type, search=search, sort=sort, page=page, limit=limit
        )
    )


@router.get("/trending", response_model=Envelope[list[CollaborationSummary]])
async def trending_collaborations(db: MongoDB):
    return ok(await services.list_trending(db))


@router.get("/templates", response_model=Envelope[list[CollaborationTemplate]])
async def collaboration_templates(category: str | None = None):
    """Built-in presets for new collaborations."""
    return ok(list_templates(category))


@router.post(
    "/from-template",
    response_model=Envelope[CollaborationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_collaboration_from_template(
    data: CollaborationFromTemplate, db: MongoDB, principal: CurrentPrincipal
):
    collab = await services.create_from_template(db, principal, data)
    return ok(services.present(collab, principal))


@router.get(
    "/user/collaborations", response_model=Envelope[list[CollaborationSummary]]
)
async def my_collaborations(db: MongoDB, principal: CurrentPrincipal):
    """Collaborations the caller owns or belongs to."""
    return ok(await services.list_user_collaborations(db, principal))


@router.get("/user/invites", response_model=Envelope[list[PendingInviteView]])
async def my_invites(db: MongoDB, principal: CurrentPrincipal):
    """The caller's live invitations."""
    return ok(await services.list_pending_invites(db, principal))


@router.get(
    "/meme/{meme_id}/remixes", response_model=Envelope[list[CollaborationSummary]]
)
async def meme_remixes(meme_id: str, db: MongoDB):
    return ok(await services.list_meme_remixes(db, meme_id))


@router.post(
    "",
    response_model=Envelope[CollaborationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_collaboration(
    data: CollaborationCreate, db: MongoDB, principal: CurrentPrincipal
):
    """Create a new collaboration."""
    collab = await services.create_collaboration(db, principal, data)
    return ok(services.present(collab, principal))


@router.get("/{collaboration_id}", response_model=Envelope[CollaborationResponse])
async def get_collaboration(
    collaboration_id: str, db: MongoDB, principal: OptionalPrincipal
):
    """Get collaboration details."""
    collab = await services.get_collaboration(db, collaboration_id, principal)
    return ok(services.present(collab, principal))


@router.put("/{collaboration_id}", response_model=Envelope[CollaborationResponse])
async def update_collaboration(
    collaboration_id: str,
    data: CollaborationUpdate,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    """Update title, description, tags or settings (Owner only)."""
    collab = await services.update_collaboration(
        db, collaboration_id, principal, data, revision
    )
    return ok(services.present(collab, principal))


# --------------------------------------------------------------------------- #
#  Membership                                                                 #
# --------------------------------------------------------------------------- #
@router.post(
    "/{collaboration_id}/invite", response_model=Envelope[CollaborationResponse]
)
async def invite_user(
    collaboration_id: str,
    data: InviteCreate,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    """Invite a user by id or username (Owner or Editor)."""
    collab = await services.invite_user(
        db, collaboration_id, principal, data, revision
    )
    return ok(services.present(collab, principal))


@router.post(
    "/{collaboration_id}/invites/accept",
    response_model=Envelope[CollaborationResponse],
)
async def accept_invite(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab = await services.accept_invite(db, collaboration_id, principal, revision)
    return ok(services.present(collab, principal))


@router.post(
    "/{collaboration_id}/invites/decline",
    response_model=Envelope[CollaborationResponse],
)
async def decline_invite(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab = await services.decline_invite(db, collaboration_id, principal, revision)
    return ok(services.present(collab, principal))


@router.post("/{collaboration_id}/join", response_model=Envelope[JoinResult])
async def join_collaboration(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
    data: JoinCreate | None = None,
):
    """Join directly, or file a join request when approval is required."""
    collab, result = await services.join_collaboration(
        db,
        collaboration_id,
        principal,
        message=data.message if data else None,
        expected_revision=revision,
    )
    return ok(
        JoinResult(status=result, collaboration=services.present(collab, principal))
    )


@router.post(
    "/{collaboration_id}/leave", response_model=Envelope[CollaborationResponse]
)
async def leave_collaboration(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab = await services.leave_collaboration(
        db, collaboration_id, principal, revision
    )
    return ok(services.present(collab, principal))


@router.post(
    "/{collaboration_id}/requests/{user_id}/approve",
    response_model=Envelope[CollaborationResponse],
)
async def approve_join_request(
    collaboration_id: str,
    user_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
    data: ApproveRequest | None = None,
):
    collab = await services.approve_join_request(
        db,
        collaboration_id,
        principal,
        user_id,
        role=data.role if data else "contributor",
        expected_revision=revision,
    )
    return ok(services.present(collab, principal))


@router.post(
    "/{collaboration_id}/requests/{user_id}/reject",
    response_model=Envelope[CollaborationResponse],
)
async def reject_join_request(
    collaboration_id: str,
    user_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab = await services.reject_join_request(
        db, collaboration_id, principal, user_id, revision
    )
    return ok(services.present(collab, principal))


@router.put(
    "/{collaboration_id}/collaborators/{user_id}/role",
    response_model=Envelope[CollaborationResponse],
)
async def update_collaborator_role(
    collaboration_id: str,
    user_id: str,
    data: RoleUpdate,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    """Change a collaborator's role (Owner only)."""
    collab = await services.update_collaborator_role(
        db, collaboration_id, principal, user_id, data.role, revision
    )
    return ok(services.present(collab, principal))


@router.delete(
    "/{collaboration_id}/collaborators/{user_id}",
    response_model=Envelope[CollaborationResponse],
)
async def remove_collaborator(
    collaboration_id: str,
    user_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    """Remove a collaborator (Owner only)."""
    collab = await services.remove_collaborator(
        db, collaboration_id, principal, user_id, revision
    )
    return ok(services.present(collab, principal))


# --------------------------------------------------------------------------- #
#  Versions and comments                                                      #
# --------------------------------------------------------------------------- #
@router.post(
    "/{collaboration_id}/versions",
    response_model=Envelope[VersionResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_version(
    collaboration_id: str,
    data: VersionCreate,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab, version = await services.add_version(
        db, collaboration_id, principal, data, revision
    )
    return ok(
        VersionResult(
            version=version, collaboration=services.present(collab, principal)
        )
    )


@router.post(
    "/{collaboration_id}/versions/{version_id}/approve",
    response_model=Envelope[VersionResult],
)
async def approve_version(
    collaboration_id: str,
    version_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    collab, version = await services.approve_version(
        db, collaboration_id, principal, version_id, revision
    )
    return ok(
        VersionResult(
            version=version, collaboration=services.present(collab, principal)
        )
    )


@router.post(
    "/{collaboration_id}/comments",
    response_model=Envelope[CommentResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    collaboration_id: str,
    data: CommentCreate,
    db: MongoDB,
    principal: OptionalPrincipal,
    revision: ExpectedRevision,
):
    """Comment as a member, or anonymously where the owner allows it."""
    collab, comment = await services.add_comment(
        db, collaboration_id, principal, data, revision
    )
    return ok(
        CommentResult(
            comment=comment, collaboration=services.present(collab, principal)
        )
    )


# --------------------------------------------------------------------------- #
#  Fork / merge                                                               #
# --------------------------------------------------------------------------- #
@router.post(
    "/{collaboration_id}/fork",
    response_model=Envelope[CollaborationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def fork_collaboration(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
    data: ForkCreate | None = None,
):
    forked = await services.fork_collaboration(
        db,
        collaboration_id,
        principal,
        title=data.title if data else None,
        expected_revision=revision,
    )
    return ok(services.present(forked, principal))


@router.post("/{collaboration_id}/merge-fork", response_model=Envelope[MergeResult])
async def merge_fork(
    collaboration_id: str,
    db: MongoDB,
    principal: CurrentPrincipal,
    revision: ExpectedRevision,
):
    """Merge this fork's new versions into its parent."""
    parent, merged = await services.merge_fork(
        db, collaboration_id, principal, revision
    )
    return ok(
        MergeResult(
            merged_versions=merged, collaboration=services.present(parent, principal)
        )
    )


# --------------------------------------------------------------------------- #
#  Derived views                                                              #
# --------------------------------------------------------------------------- #
@router.get("/{collaboration_id}/stats", response_model=Envelope[dict])
async def collaboration_stats(
    collab: CollaborationInDB = Depends(get_visible_collaboration),
):
    return ok(views.build_stats(collab))


@router.get("/{collaboration_id}/activity", response_model=Envelope[dict])
async def collaboration_activity(
    principal: OptionalPrincipal,
    limit: int = Query(default=20, ge=1, le=100),
    collab: CollaborationInDB = Depends(get_visible_collaboration),
):
    """Recent versions, comments and joins; invites for managers only."""
    return ok(
        views.build_activity(
            collab, limit, include_invites=services.is_manager(collab, principal)
        )
    )


@router.get("/{collaboration_id}/insights", response_model=Envelope[dict])
async def collaboration_insights(
    collab: CollaborationInDB = Depends(get_visible_collaboration),
):
    return ok(views.build_insights(collab))
