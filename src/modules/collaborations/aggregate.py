"""
State transitions of the collaboration aggregate.

Every operation here is free of I/O: it checks permissions and invariants
against the in-memory aggregate, raises a typed error before touching any
state if a check fails, and otherwise mutates the aggregate in place and
refreshes ``updated_at``. Persisting the result is the service's job.

Invariants kept by these functions:

* the owner is never stored in ``collaborators`` and always resolves to the
  ``owner`` role;
* owner + collaborators never exceed ``settings.max_collaborators``, and
  live pending invites reserve a seat each;
* a user id appears in at most one of owner, collaborators, pending invites;
* versions and comments are only ever appended.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from src.core.config import settings as app_settings
from src.core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from src.core.models import utcnow
from src.modules.collaborations.models import (
    CHANGE_TYPES,
    COLLABORATION_TYPES,
    MEMBER_ROLES,
    ROLES,
    Change,
    CollaborationInDB,
    CollaborationSettings,
    CollaborationStats,
    Collaborator,
    Comment,
    JoinRequest,
    PendingInvite,
    Version,
)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
VERSION_TITLE_MAX_LENGTH = 100
COMMENT_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 300
DISPLAY_NAME_MAX_LENGTH = 50
ELEMENT_ID_MAX_LENGTH = 50
FORK_SUFFIX = " (Fork)"

VERSION_SCORE = 10
COMMENT_SCORE = 5

CAPABILITIES: dict[str, frozenset[str]] = {
    "owner": frozenset(
        {"invite", "add_version", "approve_version", "merge", "comment", "manage"}
    ),
    "editor": frozenset(
        {"invite", "add_version", "approve_version", "merge", "comment"}
    ),
    "contributor": frozenset({"add_version", "comment"}),
    "viewer": frozenset({"comment"}),
}


# --------------------------------------------------------------------------- #
#  Role resolution                                                            #
# --------------------------------------------------------------------------- #
def effective_role(collab: CollaborationInDB, user_id: str | None) -> str | None:
    """Role of a user: ``owner`` first, then the collaborators list."""
    if user_id is None:
        return None
    if collab.owner_id == user_id:
        return "owner"
    collaborator = collab.find_collaborator(user_id)
    return collaborator.role if collaborator else None


def is_member(collab: CollaborationInDB, user_id: str | None) -> bool:
    return effective_role(collab, user_id) is not None


def can(collab: CollaborationInDB, user_id: str | None, capability: str) -> bool:
    role = effective_role(collab, user_id)
    return role is not None and capability in CAPABILITIES[role]


def _require(
    collab: CollaborationInDB, user_id: str | None, capability: str, detail: str
) -> None:
    if not can(collab, user_id, capability):
        raise AuthorizationError(detail)


def is_active(collab: CollaborationInDB, now: datetime | None = None) -> bool:
    """Deadline flag; informational only, never blocks a mutation."""
    deadline = collab.settings.deadline
    return deadline is None or (now or utcnow()) < deadline


# --------------------------------------------------------------------------- #
#  Input checks                                                               #
# --------------------------------------------------------------------------- #
def validate_title(title: str | None) -> str:
    value = (title or "").strip()
    if not TITLE_MIN_LENGTH <= len(value) <= TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be between {TITLE_MIN_LENGTH} and "
            f"{TITLE_MAX_LENGTH} characters"
        )
    return value


def _validate_description(description: str | None) -> str:
    value = (description or "").strip()
    if len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
        )
    return value


def _validate_message(message: str | None) -> str:
    value = (message or "").strip()
    if len(value) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message cannot exceed {MESSAGE_MAX_LENGTH} characters")
    return value


def _validate_member_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"Unknown role '{role}'")
    if role not in MEMBER_ROLES:
        raise ValidationError("The owner role cannot be assigned")
    return role


def _build_settings(
    value: CollaborationSettings | dict | None,
) -> CollaborationSettings:
    if isinstance(value, CollaborationSettings):
        return value.model_copy(deep=True)
    try:
        return CollaborationSettings(**(value or {}))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ValidationError(f"Invalid setting '{field}': {first['msg']}") from exc


def _coerce_changes(changes: Iterable[Change | dict] | None) -> list[Change]:
    coerced = []
    for change in changes or []:
        if isinstance(change, Change):
            coerced.append(change)
            continue
        if not change:
            continue
        if change.get("type") is None:
            raise ValidationError("Every change needs a type")
        if change["type"] not in CHANGE_TYPES:
            raise ValidationError(f"Unknown change type '{change['type']}'")
        coerced.append(Change(**change))
    return coerced


def _normalise_tags(tags: Iterable[str] | None) -> list[str]:
    seen: list[str] = []
    for tag in tags or []:
        value = tag.strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


# --------------------------------------------------------------------------- #
#  Seats                                                                      #
# --------------------------------------------------------------------------- #
def prune_expired_invites(
    collab: CollaborationInDB, now: datetime | None = None
) -> list[PendingInvite]:
    """Drop invites past ``expires_at``; their users can be invited again."""
    now = now or utcnow()
    expired = [i for i in collab.pending_invites if i.expires_at <= now]
    if expired:
        collab.pending_invites = [
            i for i in collab.pending_invites if i.expires_at > now
        ]
    return expired


def seats_taken(collab: CollaborationInDB, excluding: str | None = None) -> int:
    """Owner + collaborators + seats reserved by pending invites."""
    reserved = sum(1 for i in collab.pending_invites if i.user_id != excluding)
    return 1 + len(collab.collaborators) + reserved


def _require_seat(collab: CollaborationInDB, excluding: str | None = None) -> None:
    if seats_taken(collab, excluding) + 1 > collab.settings.max_collaborators:
        raise CapacityError(
            f"Maximum collaborators reached ({collab.settings.max_collaborators})"
        )


def _add_member(
    collab: CollaborationInDB, user_id: str, role: str, now: datetime
) -> Collaborator:
    collaborator = Collaborator(
        user_id=user_id, role=role, joined_at=now, last_active=now
    )
    collab.collaborators.append(collaborator)
    collab.stats.total_contributors = len(collab.collaborators) + 1
    return collaborator


def _drop_join_request(collab: CollaborationInDB, user_id: str) -> None:
    collab.join_requests = [r for r in collab.join_requests if r.user_id != user_id]


def _touch(collab: CollaborationInDB, now: datetime) -> None:
    collab.updated_at = now


def _credit(collab: CollaborationInDB, user_id: str, points: int, now: datetime):
    collaborator = collab.find_collaborator(user_id)
    if collaborator:
        collaborator.contribution_score += points
        collaborator.last_active = now


# --------------------------------------------------------------------------- #
#  Lifecycle                                                                  #
# --------------------------------------------------------------------------- #
def create(
    owner_id: str,
    title: str,
    type: str,
    description: str | None = None,
    original_meme: str | None = None,
    settings: CollaborationSettings | dict | None = None,
    tags: Iterable[str] | None = None,
    template_id: str | None = None,
    now: datetime | None = None,
) -> CollaborationInDB:
    """Build a new aggregate owned by its creator."""
    now = now or utcnow()
    title = validate_title(title)
    description = _validate_description(description)
    if type not in COLLABORATION_TYPES:
        raise ValidationError(f"Invalid collaboration type '{type}'")
    if type == "remix" and not original_meme:
        raise ValidationError("A remix needs an original meme")

    return CollaborationInDB(
        title=title,
        description=description,
        type=type,
        owner_id=owner_id,
        original_meme=original_meme,
        template_id=template_id,
        settings=_build_settings(settings),
        tags=_normalise_tags(tags),
        created_at=now,
        updated_at=now,
    )


def update_details(
    collab: CollaborationInDB,
    actor_id: str,
    title: str | None = None,
    description: str | None = None,
    tags: Iterable[str] | None = None,
    settings: dict | None = None,
    now: datetime | None = None,
) -> CollaborationInDB:
    """Owner edits of title, description, tags and settings. Type never changes."""
    now = now or utcnow()
    _require(collab, actor_id, "manage", "Only the owner can update collaborations")

    new_title = validate_title(title) if title is not None else collab.title
    new_description = (
        _validate_description(description)
        if description is not None
        else collab.description
    )
    new_settings = collab.settings
    if settings:
        new_settings = _build_settings({**collab.settings.model_dump(), **settings})
        if new_settings.max_collaborators < seats_taken(collab):
            raise ValidationError(
                "max_collaborators cannot be lower than the seats already taken"
            )

    collab.title = new_title
    collab.description = new_description
    collab.settings = new_settings
    if tags is not None:
        collab.tags = _normalise_tags(tags)
    _touch(collab, now)
    return collab


# --------------------------------------------------------------------------- #
#  Membership                                                                 #
# --------------------------------------------------------------------------- #
def invite(
    collab: CollaborationInDB,
    actor_id: str,
    target_user_id: str,
    role: str = "contributor",
    message: str | None = None,
    now: datetime | None = None,
    expire_days: int | None = None,
) -> PendingInvite:
    """Offer membership; re-inviting replaces the user's previous invite."""
    now = now or utcnow()
    prune_expired_invites(collab, now)

    _require(collab, actor_id, "invite", "Not authorized to invite users")
    role = _validate_member_role(role)
    message = _validate_message(message)
    if is_member(collab, target_user_id):
        raise ConflictError("User is already a collaborator")
    _require_seat(collab, excluding=target_user_id)

    days = expire_days if expire_days is not None else app_settings.INVITE_EXPIRE_DAYS
    pending = PendingInvite(
        user_id=target_user_id,
        role=role,
        invited_by=actor_id,
        invited_at=now,
        expires_at=now + timedelta(days=days),
        message=message,
    )
    collab.pending_invites = [
        i for i in collab.pending_invites if i.user_id != target_user_id
    ]
    collab.pending_invites.append(pending)
    collab.join_requests = [
        r for r in collab.join_requests if r.user_id != target_user_id
    ]
    _touch(collab, now)
    return pending


def accept_invite(
    collab: CollaborationInDB, user_id: str, now: datetime | None = None
) -> Collaborator:
    now = now or utcnow()
    prune_expired_invites(collab, now)

    pending = collab.find_invite(user_id)
    if pending is None:
        raise NotFoundError("Pending invite")
    if 1 + len(collab.collaborators) + 1 > collab.settings.max_collaborators:
        raise CapacityError(
            f"Maximum collaborators reached ({collab.settings.max_collaborators})"
        )

    collab.pending_invites = [i for i in collab.pending_invites if i is not pending]
    _drop_join_request(collab, user_id)
    collaborator = _add_member(collab, user_id, pending.role, now)
    _touch(collab, now)
    return collaborator


def decline_invite(
    collab: CollaborationInDB, user_id: str, now: datetime | None = None
) -> PendingInvite:
    now = now or utcnow()
    prune_expired_invites(collab, now)

    pending = collab.find_invite(user_id)
    if pending is None:
        raise NotFoundError("Pending invite")

    collab.pending_invites = [i for i in collab.pending_invites if i is not pending]
    _touch(collab, now)
    return pending


def join_directly(
    collab: CollaborationInDB,
    user_id: str,
    message: str | None = None,
    now: datetime | None = None,
) -> str:
    """Join an open collaboration.

    Returns ``"joined"`` when the user became a collaborator (directly or by
    taking up a pending invite) and ``"requested"`` when the collaboration
    requires approval and a join request was recorded instead.
    """
    now = now or utcnow()
    prune_expired_invites(collab, now)

    if is_member(collab, user_id):
        raise ConflictError("You are already a collaborator")
    if collab.find_invite(user_id):
        accept_invite(collab, user_id, now)
        return "joined"

    message = _validate_message(message)
    _require_seat(collab)

    if not collab.settings.require_approval:
        _drop_join_request(collab, user_id)
        _add_member(collab, user_id, "contributor", now)
        _touch(collab, now)
        return "joined"

    if collab.find_join_request(user_id):
        raise ConflictError("You already asked to join this collaboration")
    collab.join_requests.append(
        JoinRequest(user_id=user_id, message=message, requested_at=now)
    )
    _touch(collab, now)
    return "requested"


def approve_join_request(
    collab: CollaborationInDB,
    actor_id: str,
    user_id: str,
    role: str = "contributor",
    now: datetime | None = None,
) -> Collaborator:
    now = now or utcnow()
    prune_expired_invites(collab, now)

    _require(collab, actor_id, "invite", "Not authorized to approve join requests")
    role = _validate_member_role(role)
    request = collab.find_join_request(user_id)
    if request is None:
        raise NotFoundError("Join request")
    if is_member(collab, user_id):
        _drop_join_request(collab, user_id)
        raise ConflictError("User is already a collaborator")
    _require_seat(collab)

    collab.join_requests = [r for r in collab.join_requests if r is not request]
    collaborator = _add_member(collab, user_id, role, now)
    _touch(collab, now)
    return collaborator


def reject_join_request(
    collab: CollaborationInDB,
    actor_id: str,
    user_id: str,
    now: datetime | None = None,
) -> JoinRequest:
    now = now or utcnow()
    _require(collab, actor_id, "invite", "Not authorized to reject join requests")
    request = collab.find_join_request(user_id)
    if request is None:
        raise NotFoundError("Join request")

    collab.join_requests = [r for r in collab.join_requests if r is not request]
    _touch(collab, now)
    return request


def update_collaborator_role(
    collab: CollaborationInDB,
    actor_id: str,
    target_user_id: str,
    new_role: str,
    now: datetime | None = None,
) -> Collaborator:
    now = now or utcnow()
    new_role = _validate_member_role(new_role)
    _require(collab, actor_id, "manage", "Only the owner can change roles")

    collaborator = collab.find_collaborator(target_user_id)
    if collaborator is None:
        raise NotFoundError("Collaborator", target_user_id)

    collaborator.role = new_role
    _touch(collab, now)
    return collaborator


def remove_collaborator(
    collab: CollaborationInDB,
    actor_id: str,
    target_user_id: str,
    now: datetime | None = None,
) -> Collaborator:
    now = now or utcnow()
    _require(collab, actor_id, "manage", "Only the owner can remove collaborators")

    collaborator = collab.find_collaborator(target_user_id)
    if collaborator is None:
        raise NotFoundError("Collaborator", target_user_id)

    collab.collaborators = [c for c in collab.collaborators if c is not collaborator]
    collab.stats.total_contributors = len(collab.collaborators) + 1
    _touch(collab, now)
    return collaborator


def leave(
    collab: CollaborationInDB, user_id: str, now: datetime | None = None
) -> Collaborator:
    now = now or utcnow()
    if collab.owner_id == user_id:
        raise ValidationError("The owner cannot leave their own collaboration")

    collaborator = collab.find_collaborator(user_id)
    if collaborator is None:
        raise NotFoundError("Collaborator", user_id)

    collab.collaborators = [c for c in collab.collaborators if c is not collaborator]
    collab.stats.total_contributors = len(collab.collaborators) + 1
    _touch(collab, now)
    return collaborator


# --------------------------------------------------------------------------- #
#  History                                                                    #
# --------------------------------------------------------------------------- #
def _next_version_number(collab: CollaborationInDB) -> int:
    return len(collab.versions) + 1


def add_version(
    collab: CollaborationInDB,
    actor_id: str,
    title: str,
    description: str | None = None,
    changes: Iterable[Change | dict] | None = None,
    meme_id: str | None = None,
    now: datetime | None = None,
) -> Version:
    """Append a version. An empty change list records a checkpoint."""
    now = now or utcnow()
    _require(
        collab,
        actor_id,
        "add_version",
        "You must be an editor or contributor to create versions",
    )
    title = (title or "").strip()
    if not 1 <= len(title) <= VERSION_TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Version title must be between 1 and {VERSION_TITLE_MAX_LENGTH} characters"
        )
    description = (description or "").strip()
    coerced = _coerce_changes(changes)

    approved = not collab.settings.require_approval
    version = Version(
        id=uuid4().hex,
        number=_next_version_number(collab),
        author_id=actor_id,
        title=title,
        description=description,
        meme_id=meme_id,
        changes=coerced,
        approved=approved,
        approved_by=actor_id if approved else None,
        approved_at=now if approved else None,
        created_at=now,
    )
    collab.versions.append(version)
    collab.stats.total_versions = len(collab.versions)
    _credit(collab, actor_id, VERSION_SCORE, now)
    _touch(collab, now)
    return version


def approve_version(
    collab: CollaborationInDB,
    actor_id: str,
    version_id: str,
    now: datetime | None = None,
) -> Version:
    now = now or utcnow()
    _require(collab, actor_id, "approve_version", "Not authorized to approve versions")
    version = collab.find_version(version_id)
    if version is None:
        raise NotFoundError("Version", version_id)
    if version.approved:
        raise ConflictError("Version is already approved")

    version.approved = True
    version.approved_by = actor_id
    version.approved_at = now
    _touch(collab, now)
    return version


def add_comment(
    collab: CollaborationInDB,
    actor_id: str | None,
    content: str,
    author_name: str | None = None,
    version_number: int | None = None,
    element_id: str | None = None,
    now: datetime | None = None,
) -> Comment:
    """Append a comment from a member, or an anonymous guest when allowed."""
    now = now or utcnow()
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty")
    if len(content) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters")

    if actor_id is None:
        if not collab.settings.allow_anonymous:
            raise AuthorizationError("Sign in to comment on this collaboration")
        author_name = (author_name or "").strip()
        if not 1 <= len(author_name) <= DISPLAY_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Anonymous comments need a display name of 1 to "
                f"{DISPLAY_NAME_MAX_LENGTH} characters"
            )
    else:
        _require(collab, actor_id, "comment", "Only collaborators can comment")
        author_name = None

    if version_number is not None and not any(
        v.number == version_number for v in collab.versions
    ):
        raise ValidationError(f"Version {version_number} does not exist")
    if element_id is not None and len(element_id) > ELEMENT_ID_MAX_LENGTH:
        raise ValidationError(
            f"Element ID cannot exceed {ELEMENT_ID_MAX_LENGTH} characters"
        )

    comment = Comment(
        id=uuid4().hex,
        author_id=actor_id,
        author_name=author_name,
        is_anonymous=actor_id is None,
        content=content,
        version_number=version_number,
        element_id=element_id,
        created_at=now,
    )
    collab.comments.append(comment)
    collab.stats.total_comments = len(collab.comments)
    if actor_id is not None:
        _credit(collab, actor_id, COMMENT_SCORE, now)
    _touch(collab, now)
    return comment


# --------------------------------------------------------------------------- #
#  Fork / merge                                                               #
# --------------------------------------------------------------------------- #
def _default_fork_title(title: str) -> str:
    return title[: TITLE_MAX_LENGTH - len(FORK_SUFFIX)] + FORK_SUFFIX


def fork(
    source: CollaborationInDB,
    actor_id: str,
    title: str | None = None,
    now: datetime | None = None,
    max_collaborators_cap: int | None = None,
) -> CollaborationInDB:
    """Create an independent copy owned by ``actor_id``.

    The new aggregate carries the source's version history forward; the
    source only gains a fork count.
    """
    now = now or utcnow()
    if not source.settings.allow_forks:
        raise ForbiddenError("Forking is not allowed for this collaboration")
    if title is not None and title.strip():
        new_title = validate_title(title)
    else:
        new_title = _default_fork_title(source.title)

    cap = (
        max_collaborators_cap
        if max_collaborators_cap is not None
        else app_settings.FORK_MAX_COLLABORATORS
    )
    seats = max(2, min(source.settings.max_collaborators, cap))
    fork_settings = source.settings.model_copy(update={"max_collaborators": seats})
    versions = [v.model_copy(deep=True) for v in source.versions]

    forked = CollaborationInDB(
        title=new_title,
        description=f"Forked from: {source.title}",
        type=source.type,
        owner_id=actor_id,
        original_meme=source.original_meme,
        parent_collaboration=source.id,
        template_id=source.template_id,
        versions=versions,
        settings=fork_settings,
        stats=CollaborationStats(total_versions=len(versions)),
        tags=list(source.tags),
        created_at=now,
        updated_at=now,
    )

    source.stats.total_forks += 1
    _touch(source, now)
    return forked


def merge_fork(
    parent: CollaborationInDB,
    forked: CollaborationInDB,
    actor_id: str,
    now: datetime | None = None,
) -> list[Version]:
    """Append the fork's new versions to its parent.

    A fork version is new when neither its id nor the version it was copied
    from already exists in the parent, so merging the same fork twice only
    carries over what was added in between.
    """
    now = now or utcnow()
    if forked.parent_collaboration is None or forked.parent_collaboration != parent.id:
        raise ValidationError("This collaboration is not a fork of the target")
    _require(parent, actor_id, "merge", "Not authorized to merge into the parent")

    known = {v.id for v in parent.versions} | {
        v.source_version_id for v in parent.versions if v.source_version_id
    }
    incoming = [v for v in forked.versions if v.id not in known]
    if not incoming:
        raise ConflictError("Nothing to merge: the fork has no new versions")

    approved = not parent.settings.require_approval
    merged = []
    for version in incoming:
        copy = version.model_copy(
            deep=True,
            update={
                "id": uuid4().hex,
                "number": _next_version_number(parent),
                "approved": approved,
                "approved_by": actor_id if approved else None,
                "approved_at": now if approved else None,
                "merged_from": forked.id,
                "source_version_id": version.id,
                "created_at": now,
            },
        )
        parent.versions.append(copy)
        merged.append(copy)

    parent.stats.total_versions = len(parent.versions)
    _touch(parent, now)
    return merged
