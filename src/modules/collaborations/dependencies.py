"""Access dependencies for the collaborations module."""

from src.core.dependencies import MongoDB
from src.modules.auth.dependencies import OptionalPrincipal
from src.modules.collaborations.models import CollaborationInDB
from src.modules.collaborations.services import ensure_can_view, load_collaboration


async def get_visible_collaboration(
    collaboration_id: str,
    db: MongoDB,
    principal: OptionalPrincipal,
) -> CollaborationInDB:
    """Dependency to load a collaboration the caller is allowed to see."""
    collab = await load_collaboration(db, collaboration_id)
    ensure_can_view(collab, principal)
    return collab
