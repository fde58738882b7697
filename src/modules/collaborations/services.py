"""Collaboration services - orchestration of the aggregate and its storage.

Each mutating operation loads the aggregate, checks the revision the caller
read, applies one aggregate transition, and saves with a conditional write.
Any error raised before the save leaves the stored document untouched.
Notifications (Redis events, invitation e-mails) run after the save and are
best-effort.
"""

import logging
from collections.abc import Callable
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from src.core.config import settings
from src.core.email import send_invitation_email
from src.core.events import event_publisher
from src.core.exceptions import (
    AppException,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from src.core.models import utcnow
from src.modules.auth.schemas import Principal
from src.modules.auth.services import get_user_by_id, get_user_by_username
from src.modules.collaborations import aggregate, repository
from src.modules.collaborations.models import CollaborationInDB, Version
from src.modules.collaborations.schemas import (
    CollaborationCreate,
    CollaborationFromTemplate,
    CollaborationPage,
    CollaborationResponse,
    CollaborationSummary,
    CollaborationUpdate,
    CommentCreate,
    InviteCreate,
    PendingInviteView,
    VersionCreate,
)
from src.modules.collaborations.templates import get_template
from src.modules.memes.services import get_meme_by_id

logger = logging.getLogger(__name__)

MANAGER_ROLES = ("owner", "editor")


# --------------------------------------------------------------------------- #
#  Loading and access                                                         #
# --------------------------------------------------------------------------- #
async def load_collaboration(
    db: AsyncIOMotorDatabase, collab_id: str
) -> CollaborationInDB:
    collab = await repository.get_collaboration_by_id(db, collab_id)
    if collab is None:
        raise NotFoundError("Collaboration", collab_id)
    return collab


def check_revision(collab: CollaborationInDB, expected_revision: int | None) -> None:
    if expected_revision is not None and expected_revision != collab.revision:
        raise ConflictError(
            f"Collaboration is at revision {collab.revision}, "
            f"not {expected_revision}; reload and retry"
        )


def _user_id(principal: Principal | None) -> str | None:
    return principal.user_id if principal else None


def can_view(collab: CollaborationInDB, principal: Principal | None) -> bool:
    """Public collaborations are open; private ones need a seat or an invite."""
    if collab.settings.is_public:
        return True
    if principal is None:
        return False
    if principal.is_admin or aggregate.is_member(collab, principal.user_id):
        return True
    return collab.find_invite(principal.user_id) is not None


def ensure_can_view(collab: CollaborationInDB, principal: Principal | None) -> None:
    if not can_view(collab, principal):
        raise ForbiddenError("This collaboration is private")


def is_manager(collab: CollaborationInDB, principal: Principal | None) -> bool:
    return aggregate.effective_role(collab, _user_id(principal)) in MANAGER_ROLES


def present(
    collab: CollaborationInDB, principal: Principal | None = None
) -> CollaborationResponse:
    """Serialisable view; invite and request queues only for managers."""
    role = aggregate.effective_role(collab, _user_id(principal))
    response = CollaborationResponse.from_model(
        collab, user_role=role, is_active=aggregate.is_active(collab)
    )
    if role not in MANAGER_ROLES:
        response.pending_invites = []
        response.join_requests = []
    return response


async def _publish(collab: CollaborationInDB, event_type: str, **payload: Any) -> None:
    await event_publisher.publish(collab.id, event_type, payload)


async def _mutate(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    expected_revision: int | None,
    apply: Callable[[CollaborationInDB], Any],
) -> tuple[CollaborationInDB, Any]:
    collab = await load_collaboration(db, collab_id)
    read_revision = collab.revision
    try:
        check_revision(collab, expected_revision)
        result = apply(collab)
    except AppException as exc:
        logger.warning("Rejected change to %s: %s", collab_id, exc.detail)
        raise
    await repository.save_collaboration(db, collab, read_revision)
    return collab, result


# --------------------------------------------------------------------------- #
#  Creation and details                                                       #
# --------------------------------------------------------------------------- #
async def _check_original_meme(db: AsyncIOMotorDatabase, meme_id: str | None) -> None:
    if meme_id and await get_meme_by_id(db, meme_id) is None:
        raise NotFoundError("Original meme", meme_id)


async def create_collaboration(
    db: AsyncIOMotorDatabase, principal: Principal, data: CollaborationCreate
) -> CollaborationInDB:
    """Create a new collaboration owned by the caller."""
    collab = aggregate.create(
        owner_id=principal.user_id,
        title=data.title,
        type=data.type,
        description=data.description,
        original_meme=data.original_meme,
        settings=data.settings.as_update(),
        tags=data.tags,
    )
    await _check_original_meme(db, collab.original_meme)

    await repository.insert_collaboration(db, collab)
    logger.info("Collaboration %s created by %s", collab.id, principal.user_id)
    await _publish(collab, "collaboration.created", owner_id=principal.user_id)
    return collab


async def create_from_template(
    db: AsyncIOMotorDatabase, principal: Principal, data: CollaborationFromTemplate
) -> CollaborationInDB:
    template = get_template(data.template_id)
    if template is None:
        raise NotFoundError("Template", data.template_id)

    collab = aggregate.create(
        owner_id=principal.user_id,
        title=data.title,
        type=template.type,
        description=data.description or template.description,
        original_meme=data.original_meme,
        settings={**template.default_settings, **data.settings.as_update()},
        tags=data.tags if data.tags is not None else template.tags,
        template_id=template.id,
    )
    await _check_original_meme(db, collab.original_meme)

    await repository.insert_collaboration(db, collab)
    logger.info(
        "Collaboration %s created from template %s by %s",
        collab.id,
        template.id,
        principal.user_id,
    )
    await _publish(
        collab,
        "collaboration.created",
        owner_id=principal.user_id,
        template=template.id,
    )
    return collab


async def get_collaboration(
    db: AsyncIOMotorDatabase, collab_id: str, principal: Principal | None
) -> CollaborationInDB:
    """Fetch for display, counting the view."""
    collab = await load_collaboration(db, collab_id)
    ensure_can_view(collab, principal)
    await repository.increment_views(db, collab.id)
    collab.stats.total_views += 1
    return collab


async def update_collaboration(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    data: CollaborationUpdate,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, _ = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.update_details(
            c,
            principal.user_id,
            title=data.title,
            description=data.description,
            tags=data.tags,
            settings=data.settings.as_update() if data.settings else None,
        ),
    )
    await _publish(collab, "collaboration.updated", actor_id=principal.user_id)
    return collab


# --------------------------------------------------------------------------- #
#  Membership                                                                 #
# --------------------------------------------------------------------------- #
async def invite_user(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    data: InviteCreate,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    """Invite a user, addressed by id or username."""
    if data.user_id:
        target = await get_user_by_id(db, data.user_id)
    else:
        target = await get_user_by_username(db, data.username)
    if target is None or not target.is_active:
        raise NotFoundError("User", data.user_id or data.username)

    collab, pending = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.invite(
            c, principal.user_id, str(target.id), data.role, data.message
        ),
    )
    logger.info(
        "User %s invited to %s as %s by %s",
        target.id,
        collab.id,
        pending.role,
        principal.user_id,
    )
    await _publish(
        collab,
        "invite.created",
        user_id=str(target.id),
        role=pending.role,
        invited_by=principal.user_id,
    )

    inviter = await get_user_by_id(db, principal.user_id)
    await send_invitation_email(
        recipient_email=target.email,
        inviter_name=inviter.username if inviter else "Someone",
        collaboration_title=collab.title,
        role=pending.role,
        message=pending.message,
    )
    return collab


async def list_pending_invites(
    db: AsyncIOMotorDatabase, principal: Principal
) -> list[PendingInviteView]:
    """The caller's live invitations across all collaborations."""
    now = utcnow()
    invites = []
    for collab in await repository.list_with_pending_invite(db, principal.user_id):
        pending = collab.find_invite(principal.user_id)
        if pending is None or pending.expires_at <= now:
            continue
        invites.append(
            PendingInviteView(
                collaboration_id=collab.id,
                collaboration_title=collab.title,
                role=pending.role,
                invited_by=pending.invited_by,
                invited_at=pending.invited_at,
                expires_at=pending.expires_at,
                message=pending.message,
            )
        )
    return invites


async def accept_invite(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, collaborator = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.accept_invite(c, principal.user_id),
    )
    logger.info("User %s accepted invite to %s", principal.user_id, collab.id)
    await _publish(
        collab, "invite.accepted", user_id=principal.user_id, role=collaborator.role
    )
    return collab


async def decline_invite(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, _ = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.decline_invite(c, principal.user_id),
    )
    logger.info("User %s declined invite to %s", principal.user_id, collab.id)
    await _publish(collab, "invite.declined", user_id=principal.user_id)
    return collab


async def join_collaboration(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    message: str | None = None,
    expected_revision: int | None = None,
) -> tuple[CollaborationInDB, str]:
    def apply(collab: CollaborationInDB) -> str:
        if not can_view(collab, principal):
            raise ForbiddenError("This collaboration requires an invite to join")
        return aggregate.join_directly(collab, principal.user_id, message)

    collab, status = await _mutate(db, collab_id, expected_revision, apply)
    logger.info("User %s join on %s: %s", principal.user_id, collab.id, status)
    event = "member.joined" if status == "joined" else "join.requested"
    await _publish(collab, event, user_id=principal.user_id)
    return collab, status


async def leave_collaboration(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, _ = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.leave(c, principal.user_id),
    )
    await _publish(collab, "member.left", user_id=principal.user_id)
    return collab


async def approve_join_request(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    user_id: str,
    role: str = "contributor",
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, collaborator = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.approve_join_request(c, principal.user_id, user_id, role),
    )
    await _publish(
        collab,
        "member.joined",
        user_id=user_id,
        role=collaborator.role,
        approved_by=principal.user_id,
    )
    return collab


async def reject_join_request(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    user_id: str,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, _ = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.reject_join_request(c, principal.user_id, user_id),
    )
    await _publish(collab, "join.rejected", user_id=user_id)
    return collab


async def update_collaborator_role(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    user_id: str,
    role: str,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, collaborator = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.update_collaborator_role(
            c, principal.user_id, user_id, role
        ),
    )
    logger.info("User %s is now %s on %s", user_id, collaborator.role, collab.id)
    await _publish(collab, "member.role_changed", user_id=user_id, role=role)
    return collab


async def remove_collaborator(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    user_id: str,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    collab, _ = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.remove_collaborator(c, principal.user_id, user_id),
    )
    logger.info("User %s removed from %s", user_id, collab.id)
    await _publish(collab, "member.removed", user_id=user_id)
    return collab


# --------------------------------------------------------------------------- #
#  Versions and comments                                                      #
# --------------------------------------------------------------------------- #
async def add_version(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    data: VersionCreate,
    expected_revision: int | None = None,
) -> tuple[CollaborationInDB, Version]:
    if data.meme_id and await get_meme_by_id(db, data.meme_id) is None:
        raise NotFoundError("Meme", data.meme_id)

    collab, version = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.add_version(
            c,
            principal.user_id,
            title=data.title,
            description=data.description,
            changes=[change.model_dump() for change in data.changes],
            meme_id=data.meme_id,
        ),
    )
    logger.info("Version %s added to %s", version.number, collab.id)
    await _publish(
        collab,
        "version.created",
        version_id=version.id,
        number=version.number,
        author_id=principal.user_id,
    )
    return collab, version


async def approve_version(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    version_id: str,
    expected_revision: int | None = None,
) -> tuple[CollaborationInDB, Version]:
    collab, version = await _mutate(
        db,
        collab_id,
        expected_revision,
        lambda c: aggregate.approve_version(c, principal.user_id, version_id),
    )
    await _publish(collab, "version.approved", version_id=version.id)
    return collab, version


async def add_comment(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal | None,
    data: CommentCreate,
    expected_revision: int | None = None,
):
    def apply(collab: CollaborationInDB):
        ensure_can_view(collab, principal)
        return aggregate.add_comment(
            collab,
            _user_id(principal),
            data.content,
            author_name=data.author_name,
            version_number=data.version_number,
            element_id=data.element_id,
        )

    collab, comment = await _mutate(db, collab_id, expected_revision, apply)
    await _publish(
        collab,
        "comment.added",
        comment_id=comment.id,
        author_id=comment.author_id,
        is_anonymous=comment.is_anonymous,
    )
    return collab, comment


# --------------------------------------------------------------------------- #
#  Fork / merge                                                               #
# --------------------------------------------------------------------------- #
async def fork_collaboration(
    db: AsyncIOMotorDatabase,
    collab_id: str,
    principal: Principal,
    title: str | None = None,
    expected_revision: int | None = None,
) -> CollaborationInDB:
    """Fork into a new collaboration owned by the caller.

    The fork is inserted only after the source's fork counter was saved, so
    a stale source write leaves no orphan fork behind.
    """

    def apply(collab: CollaborationInDB) -> CollaborationInDB:
        ensure_can_view(collab, principal)
        return aggregate.fork(collab, principal.user_id, title)

    source, forked = await _mutate(db, collab_id, expected_revision, apply)
    await repository.insert_collaboration(db, forked)
    logger.info(
        "Collaboration %s forked to %s by %s", source.id, forked.id, principal.user_id
    )
    await _publish(source, "collaboration.forked", fork_id=forked.id)
    await _publish(forked, "collaboration.created", parent_collaboration=source.id)
    return forked


async def merge_fork(
    db: AsyncIOMotorDatabase,
    fork_id: str,
    principal: Principal,
    expected_revision: int | None = None,
) -> tuple[CollaborationInDB, list[Version]]:
    """Merge a fork's new versions back into its parent.

    ``expected_revision`` refers to the parent, the aggregate being written.
    """
    forked = await load_collaboration(db, fork_id)
    if forked.parent_collaboration is None:
        raise ValidationError("This collaboration is not a fork")
    ensure_can_view(forked, principal)
    try:
        parent, merged = await _mutate(
            db,
            forked.parent_collaboration,
            expected_revision,
            lambda p: aggregate.merge_fork(p, forked, principal.user_id),
        )
    except NotFoundError as exc:
        raise NotFoundError(
            "Parent collaboration", forked.parent_collaboration
        ) from exc

    logger.info("Merged %s versions from %s into %s", len(merged), forked.id, parent.id)
    await _publish(
        parent,
        "fork.merged",
        fork_id=forked.id,
        versions=[v.id for v in merged],
        actor_id=principal.user_id,
    )
    return parent, merged


# --------------------------------------------------------------------------- #
#  Listings                                                                   #
# --------------------------------------------------------------------------- #
async def list_collaborations(
    db: AsyncIOMotorDatabase,
    type: str | None = None,
    search: str | None = None,
    sort: str = "recent",
    page: int = 1,
    limit: int = 12,
) -> CollaborationPage:
    result = await repository.list_public_collaborations(
        db, type=type, search=search, sort=sort, page=page, limit=limit
    )
    return CollaborationPage(
        items=[CollaborationSummary.from_model(c) for c in result["items"]],
        total=result["total"],
        page=result["page"],
        total_pages=result["total_pages"],
    )


async def list_trending(db: AsyncIOMotorDatabase) -> list[CollaborationSummary]:
    items = await repository.list_trending(db, limit=settings.TRENDING_LIMIT)
    return [CollaborationSummary.from_model(c) for c in items]


async def list_user_collaborations(
    db: AsyncIOMotorDatabase, principal: Principal
) -> list[CollaborationSummary]:
    items = await repository.list_user_collaborations(db, principal.user_id)
    return [CollaborationSummary.from_model(c) for c in items]


async def list_meme_remixes(
    db: AsyncIOMotorDatabase, meme_id: str
) -> list[CollaborationSummary]:
    items = await repository.list_remixes(db, meme_id)
    return [CollaborationSummary.from_model(c) for c in items]
