# recipebox/app/domain/models.py
"""
Domain models for bookmarks, collections, authored recipes and the
cross-screen notifications that keep them in sync.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Hashable, Optional


DEFAULT_RECIPE_SOURCE = "Spoonacular"


class EventKind(str, Enum):
    """Kinds of in-process domain events."""
    BOOKMARK_ADDED = "bookmarkAdded"
    BOOKMARK_REMOVED = "bookmarkRemoved"


@dataclass(frozen=True)
class DomainEvent:
    """
    Transient notification published after a successful remote mutation.
    Never persisted and never replayed to late subscribers.
    """
    kind: EventKind
    recipe_id: int

    @classmethod
    def bookmark_added(cls, recipe_id: int) -> "DomainEvent":
        return cls(EventKind.BOOKMARK_ADDED, recipe_id)

    @classmethod
    def bookmark_removed(cls, recipe_id: int) -> "DomainEvent":
        return cls(EventKind.BOOKMARK_REMOVED, recipe_id)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class RecipeSummary:
    """A recipe as listed by the external catalog."""
    id: int
    title: str
    image: str = ""
    servings: int = 4
    ready_in_minutes: int = 30
    source_name: Optional[str] = None


@dataclass(frozen=True)
class BookmarkRecord:
    """
    A user's bookmark of an external recipe.
    At most one record exists per (user_id, recipe_id).
    """
    user_id: str
    recipe_id: int
    recipe_title: str
    recipe_image: str = ""
    recipe_source: str = DEFAULT_RECIPE_SOURCE
    created_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Ingredient:
    amount: str
    unit: str
    name: str

    def display(self) -> str:
        return " ".join(part for part in (self.amount, self.unit, self.name) if part)


@dataclass(frozen=True)
class CookingStep:
    description: str


@dataclass(frozen=True)
class MyRecipe:
    """A recipe authored by the user."""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    servings: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    ingredients: tuple[Ingredient, ...] = ()
    cooking_steps: tuple[CookingStep, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Collection:
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    recipe_count: int = 0


@dataclass(frozen=True)
class CollectionEntry:
    """Membership of one authored recipe in a collection."""
    id: str
    collection_id: str
    recipe_id: str
    recipe: Optional[MyRecipe] = None
    created_at: Optional[datetime] = None


class ControllerStatus(str, Enum):
    """Load status of a list controller."""
    IDLE = "IDLE"
    LOADING = "LOADING"
    REFRESHING = "REFRESHING"
    READY = "READY"
    ERROR = "ERROR"


class MutationState(str, Enum):
    """Outcome of an optimistic mutation."""
    PENDING = "PENDING"
    COMMITTED = "COMMITTED"
    REVERTED = "REVERTED"
    SKIPPED = "SKIPPED"


@dataclass
class MutationResult:
    item_id: Hashable
    state: MutationState
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == MutationState.COMMITTED


class NoticeLevel(str, Enum):
    INFO = "INFO"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Notice:
    """A transient, dismissable message for the user."""
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    retryable: bool = False
    context: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_error(self) -> bool:
        return self.level == NoticeLevel.ERROR
