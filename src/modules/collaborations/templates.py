"""Built-in collaboration presets offered by the templates endpoint."""

from pydantic import BaseModel, Field

from src.modules.collaborations.models import CollaborationType


class CollaborationTemplate(BaseModel):
    """A named starting point for a new collaboration."""

    id: str
    name: str
    category: str
    description: str
    type: CollaborationType = "collaboration"
    default_settings: dict = Field(default_factory=dict)
    suggested_roles: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


TEMPLATES: tuple[CollaborationTemplate, ...] = (
    CollaborationTemplate(
        id="open-jam",
        name="Open Meme Jam",
        category="community",
        description="Anyone can hop in and add a version. Good for quick group riffs.",
        default_settings={
            "is_public": True,
            "allow_forks": True,
            "require_approval": False,
            "max_collaborators": 25,
        },
        suggested_roles=["contributor"],
        tags=["jam", "community"],
    ),
    CollaborationTemplate(
        id="curated-series",
        name="Curated Series",
        category="editorial",
        description="Editors review every version before it counts toward the series.",
        default_settings={
            "is_public": True,
            "allow_forks": False,
            "require_approval": True,
            "max_collaborators": 8,
        },
        suggested_roles=["editor", "contributor"],
        tags=["series"],
    ),
    CollaborationTemplate(
        id="remix-relay",
        name="Remix Relay",
        category="remix",
        description="Each participant remixes the previous take on an original meme.",
        type="remix",
        default_settings={
            "is_public": True,
            "allow_forks": True,
            "require_approval": False,
            "max_collaborators": 12,
        },
        suggested_roles=["contributor"],
        tags=["remix", "relay"],
    ),
    CollaborationTemplate(
        id="template-workshop",
        name="Template Workshop",
        category="templates",
        description="A small private team designing a reusable meme template.",
        type="template_creation",
        default_settings={
            "is_public": False,
            "allow_forks": False,
            "require_approval": True,
            "max_collaborators": 5,
        },
        suggested_roles=["editor", "viewer"],
        tags=["template"],
    ),
    CollaborationTemplate(
        id="feedback-circle",
        name="Feedback Circle",
        category="community",
        description="Share a draft and collect comments, guests included.",
        default_settings={
            "is_public": True,
            "allow_forks": True,
            "require_approval": False,
            "allow_anonymous": True,
            "max_collaborators": 10,
        },
        suggested_roles=["viewer", "contributor"],
        tags=["feedback"],
    ),
)


def list_templates(category: str | None = None) -> list[CollaborationTemplate]:
    if category is None:
        return list(TEMPLATES)
    return [t for t in TEMPLATES if t.category == category]


def get_template(template_id: str) -> CollaborationTemplate | None:
    return next((t for t in TEMPLATES if t.id == template_id), None)
