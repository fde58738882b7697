"""
Read-time views derived from a collaboration: stats, activity feed, insights.

Counters come from the aggregate's write-maintained ``stats``; only the
windowed figures scan the version and comment lists. Insights are a fixed,
deterministic heuristic over those numbers.
"""

from datetime import datetime, timedelta

from src.core.config import settings
from src.core.models import utcnow
from src.modules.collaborations.aggregate import is_active
from src.modules.collaborations.models import CollaborationInDB

ACTIVITY_PREVIEW_LENGTH = 100
DEADLINE_WARNING_DAYS = 3
STALE_AFTER_DAYS = 14


def days_between(start: datetime, end: datetime) -> int:
    return max(0, (end - start).days)


def last_activity(collab: CollaborationInDB) -> datetime:
    stamps = [collab.updated_at]
    stamps.extend(v.created_at for v in collab.versions)
    stamps.extend(c.created_at for c in collab.comments)
    return max(stamps)


def build_stats(collab: CollaborationInDB, now: datetime | None = None) -> dict:
    now = now or utcnow()
    window_start = now - timedelta(days=settings.ACTIVITY_WINDOW_DAYS)

    contributors = []
    for collaborator in collab.collaborators:
        contributors.append(
            {
                "user_id": collaborator.user_id,
                "role": collaborator.role,
                "joined_at": collaborator.joined_at,
                "last_active": collaborator.last_active,
                "contribution_score": collaborator.contribution_score,
                "versions_created": sum(
                    1 for v in collab.versions if v.author_id == collaborator.user_id
                ),
                "comments_added": sum(
                    1 for c in collab.comments if c.author_id == collaborator.user_id
                ),
            }
        )

    return {
        "basic": {
            "collaborator_count": len(collab.collaborators) + 1,
            "version_count": collab.stats.total_versions,
            "comment_count": collab.stats.total_comments,
            "fork_count": collab.stats.total_forks,
            "view_count": collab.stats.total_views,
        },
        "activity": {
            "versions_last_7d": sum(
                1 for v in collab.versions if v.created_at >= window_start
            ),
            "comments_last_7d": sum(
                1 for c in collab.comments if c.created_at >= window_start
            ),
            "last_activity": last_activity(collab),
        },
        "contributors": contributors,
        "timeline": {
            "created_at": collab.created_at,
            "days_since_creation": days_between(collab.created_at, now),
            "deadline": collab.settings.deadline,
            "is_active": is_active(collab, now),
        },
    }


def _preview(content: str) -> str:
    if len(content) <= ACTIVITY_PREVIEW_LENGTH:
        return content
    return content[:ACTIVITY_PREVIEW_LENGTH] + "..."


def build_activity(
    collab: CollaborationInDB, limit: int = 20, include_invites: bool = False
) -> dict:
    """Versions, comments and joins, newest first.

    Pending invites are listed only with ``include_invites``, for managers.
    """
    activities = []

    for version in collab.versions:
        activities.append(
            {
                "type": "version",
                "user": version.author_id,
                "created_at": version.created_at,
                "details": {
                    "version_number": version.number,
                    "title": version.title,
                    "description": version.description,
                    "merged_from": version.merged_from,
                },
            }
        )

    for comment in collab.comments:
        activities.append(
            {
                "type": "comment",
                "user": comment.author_id or comment.author_name,
                "created_at": comment.created_at,
                "details": {
                    "content": _preview(comment.content),
                    "version_number": comment.version_number,
                    "is_anonymous": comment.is_anonymous,
                },
            }
        )

    for collaborator in collab.collaborators:
        activities.append(
            {
                "type": "join",
                "user": collaborator.user_id,
                "created_at": collaborator.joined_at,
                "details": {"role": collaborator.role},
            }
        )

    invites = collab.pending_invites if include_invites else []
    for pending in invites:
        activities.append(
            {
                "type": "invite",
                "user": pending.user_id,
                "created_at": pending.invited_at,
                "details": {"role": pending.role, "invited_by": pending.invited_by},
            }
        )

    activities.sort(key=lambda a: a["created_at"], reverse=True)
    return {"activities": activities[: max(0, limit)], "total_count": len(activities)}


def completion_score(version_count: int, comment_count: int) -> int:
    return min(100, version_count * 10 + comment_count * 2)


def build_insights(collab: CollaborationInDB, now: datetime | None = None) -> dict:
    """Deterministic threshold rules; no model behind these numbers."""
    now = now or utcnow()
    days = max(1, days_between(collab.created_at, now))
    version_count = collab.stats.total_versions
    comment_count = collab.stats.total_comments
    collaborator_count = len(collab.collaborators) + 1
    idle_days = days_between(last_activity(collab), now)
    active = is_active(collab, now)

    recommendations = []
    if collaborator_count < 2:
        recommendations.append("Invite more collaborators to get fresh ideas")
    if version_count == 0:
        recommendations.append("Create the first version to get the project started")
    if comment_count == 0:
        recommendations.append("Start a discussion in the comments")
    if not collab.settings.is_public:
        recommendations.append("Make the collaboration public to attract contributors")
    if collab.pending_invites:
        recommendations.append(
            f"Follow up on {len(collab.pending_invites)} pending invitation(s)"
        )
    if collab.join_requests:
        recommendations.append(
            f"Review {len(collab.join_requests)} pending join request(s)"
        )
    deadline = collab.settings.deadline
    if active and deadline and deadline - now <= timedelta(days=DEADLINE_WARNING_DAYS):
        recommendations.append("The deadline is approaching, wrap up the final version")
    if idle_days >= STALE_AFTER_DAYS:
        recommendations.append("No recent activity, ping your collaborators")

    return {
        "engagement": {
            "versions_per_day": round(version_count / days, 2),
            "comments_per_day": round(comment_count / days, 2),
            "collaborator_count": collaborator_count,
        },
        "quality": {
            "completion_score": completion_score(version_count, comment_count),
            "approved_versions": sum(1 for v in collab.versions if v.approved),
        },
        "activity": {
            "is_active": active,
            "days_since_last_activity": idle_days,
        },
        "recommendations": recommendations,
    }
