from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Protocol, Sequence, TypeVar

from .models import ContentItem

T = TypeVar("T")


class PromptKind(str, Enum):
    INCOMPATIBLE_ACTION = "incompatible_action"
    INCOMPATIBLE_PICK = "incompatible_pick"
    DEPENDENCY_PICK = "dependency_pick"
    DEPENDENT_ACTION = "dependent_action"
    ORPHAN_CLEANUP = "orphan_cleanup"
    TEST_OUTCOME = "test_outcome"
    CONFIRM_REMOVAL = "confirm_removal"
    CONFIRM_FINISH = "confirm_finish"


class IncompatibleAction(str, Enum):
    REMOVE_ALL = "remove"
    CONTINUE = "continue"
    CANCEL = "cancel"
    PICK = "pick"


class DependentAction(str, Enum):
    REMOVE_ALL = "remove_all"
    FORCE_REMOVE = "force_remove"
    CANCEL = "cancel"


class ProviderClient(Protocol):
    """Access to a third-party content provider.

    Implementations raise ``ProviderFetchError`` when an item cannot be
    fetched.
    """

    def fetch_item(self, identifier: str) -> ContentItem:
        ...

    def fetch_dependency_item(self, identifier: str) -> ContentItem:
        ...

    def download(self, item: ContentItem, dest_path: Path) -> None:
        ...


class Chooser(Protocol):
    """Decision points surfaced to the user.

    The engines pass typed options and receive one of them back; they never
    render prompt text themselves.
    """

    def choose(self, kind: PromptKind, options: Sequence[T]) -> T:
        ...

    def choose_many(self, kind: PromptKind, options: Sequence[T]) -> List[T]:
        ...

    def confirm(self, kind: PromptKind, subject: Sequence[ContentItem] = ()) -> bool:
        ...
