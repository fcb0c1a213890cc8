from __future__ import annotations

from enum import Enum
from typing import Dict, List, Sequence, TypeVar

from .errors import OperationCancelled
from .interfaces import PromptKind
from .logging_utils import log_info, log_warn
from .models import ContentItem

T = TypeVar("T")

QUESTIONS: Dict[PromptKind, str] = {
    PromptKind.INCOMPATIBLE_ACTION: "How should the incompatible content be handled?",
    PromptKind.INCOMPATIBLE_PICK: "Select the incompatible content to remove",
    PromptKind.DEPENDENCY_PICK: "Select the dependencies to add",
    PromptKind.DEPENDENT_ACTION: "Other content depends on this item. What should happen?",
    PromptKind.ORPHAN_CLEANUP: "Remove these unused dependencies as well?",
    PromptKind.TEST_OUTCOME: "Result of this step (good: problem gone, bad: problem still there)",
    PromptKind.CONFIRM_REMOVAL: "Remove the listed content?",
    PromptKind.CONFIRM_FINISH: "Finish the bisection and re-enable every mod?",
}


def _describe(option: object) -> str:
    if isinstance(option, Enum):
        return str(option.value).replace("_", " ")
    name = getattr(option, "name", "")
    key = getattr(option, "key", "") or getattr(option, "slug", "")
    if name and key and name != key:
        return f"{name} ({key})"
    return str(name or key or option)


class TerminalChooser:
    """Answer engine prompts from standard input."""

    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def _ask(self, text: str) -> str:
        try:
            return input(text).strip()
        except EOFError as exc:
            raise OperationCancelled("Input closed.") from exc

    def choose(self, kind: PromptKind, options: Sequence[T]) -> T:
        log_info(QUESTIONS[kind])
        for position, option in enumerate(options, start=1):
            log_info(f"{position}. {_describe(option)}", indent=2)
        while True:
            answer = self._ask(f"Choice [1-{len(options)}]: ")
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            log_warn("Please enter one of the listed numbers.")

    def choose_many(self, kind: PromptKind, options: Sequence[T]) -> List[T]:
        log_info(QUESTIONS[kind])
        for position, option in enumerate(options, start=1):
            log_info(f"{position}. {_describe(option)}", indent=2)
        while True:
            answer = self._ask("Numbers separated by spaces (empty for none, 'all' for every item): ")
            if not answer:
                return []
            if answer.lower() == "all":
                return list(options)
            picks = answer.replace(",", " ").split()
            if all(pick.isdigit() and 1 <= int(pick) <= len(options) for pick in picks):
                seen = sorted({int(pick) for pick in picks})
                return [options[pick - 1] for pick in seen]
            log_warn("Please enter listed numbers only.")

    def confirm(self, kind: PromptKind, subject: Sequence[ContentItem] = ()) -> bool:
        for item in subject:
            log_info(f"- {item.label}", indent=2)
        if self.assume_yes:
            return True
        answer = self._ask(f"{QUESTIONS[kind]} [y/N]: ")
        return answer.lower() in ("y", "yes")


__all__ = ["TerminalChooser"]
