"""Roadmap hierarchy schemas.

The models mirror the documents served by the roadmap API: camelCase on the
wire, snake_case in Python. They are forgiving so that partially
formed drafts (imports, old documents) still load: missing fields default,
malformed child collections collapse to empty lists, unknown enum values fall
back to the default.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Visibility = Literal["public", "private"]
RoadmapStatus = Literal["draft", "published", "archived"]
ChallengeType = Literal["quiz", "project", "reading"]

VISIBILITIES: tuple[str, ...] = ("public", "private")
ROADMAP_STATUSES: tuple[str, ...] = ("draft", "published", "archived")
CHALLENGE_TYPES: tuple[str, ...] = ("quiz", "project", "reading")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _children(value: Any) -> list:
    """Keep only object-like children; anything else renders as nothing."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict | BaseModel)]


def _choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    return value if value in allowed else default


class TreeNode(BaseModel):
    """Fields shared by every node of the hierarchy."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = ""
    title: str = ""

    @field_validator("id", "title", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) field names."""
        return self.model_dump(by_alias=True, mode="json")


class OrderedNode(TreeNode):
    """A node whose position among its siblings is persisted."""

    order: int = 0

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0


class Challenge(OrderedNode):
    """A task inside a milestone."""

    description: str = ""
    type: ChallengeType = "project"
    resources: list[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return _text(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str:
        return _choice(value, CHALLENGE_TYPES, "project")

    @field_validator("resources", mode="before")
    @classmethod
    def _coerce_resources(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [_text(item) for item in value if item is not None]


class Milestone(OrderedNode):
    """A checkpoint inside a level."""

    description: str = ""
    due_date: str | None = Field(default=None, alias="dueDate")
    reward: str | None = None
    challenges: list[Challenge] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return _text(value)

    @field_validator("due_date", "reward", mode="before")
    @classmethod
    def _coerce_optional(cls, value: Any) -> str | None:
        return None if value is None else _text(value)

    @field_validator("challenges", mode="before")
    @classmethod
    def _coerce_challenges(cls, value: Any) -> list:
        return _children(value)


class Level(OrderedNode):
    """A stage of a roadmap."""

    unlock_requirements: str = Field(default="", alias="unlockRequirements")
    milestones: list[Milestone] = Field(default_factory=list)

    @field_validator("unlock_requirements", mode="before")
    @classmethod
    def _coerce_requirements(cls, value: Any) -> str:
        return _text(value)

    @field_validator("milestones", mode="before")
    @classmethod
    def _coerce_milestones(cls, value: Any) -> list:
        return _children(value)


class Roadmap(TreeNode):
    """Root of the hierarchy; owns its levels."""

    description: str = ""
    icon: str = ""
    visibility: Visibility = "public"
    status: RoadmapStatus = "published"
    levels: list[Level] = Field(default_factory=list)

    @field_validator("description", "icon", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str:
        return _text(value)

    @field_validator("visibility", mode="before")
    @classmethod
    def _coerce_visibility(cls, value: Any) -> str:
        return _choice(value, VISIBILITIES, "public")

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str:
        return _choice(value, ROADMAP_STATUSES, "published")

    @field_validator("levels", mode="before")
    @classmethod
    def _coerce_levels(cls, value: Any) -> list:
        return _children(value)


MODEL_BY_TYPE: dict[str, type[TreeNode]] = {
    "roadmap": Roadmap,
    "level": Level,
    "milestone": Milestone,
    "challenge": Challenge,
}


class ReorderEntry(BaseModel):
    """One id/order pair of a reorder request."""

    id: str
    order: int


class ReorderPayload(BaseModel):
    """Body of ``POST …/reorder``: the full dense order of one sibling group."""

    order: list[ReorderEntry]


class RoadmapStats(BaseModel):
    """Aggregate counts shown in the summary panel."""

    model_config = ConfigDict(populate_by_name=True)

    total_roadmaps: int = Field(default=0, alias="totalRoadmaps")
    total_levels: int = Field(default=0, alias="totalLevels")
    total_milestones: int = Field(default=0, alias="totalMilestones")
    total_challenges: int = Field(default=0, alias="totalChallenges")
