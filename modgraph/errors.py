from __future__ import annotations


class ModgraphError(Exception):
    """Base class for every error raised by the modgraph engines."""


class NotFoundError(ModgraphError):
    def __init__(self, key: str, what: str = "content") -> None:
        super().__init__(f"No {what} found for '{key}'.")
        self.key = key


class ConflictError(ModgraphError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"Content '{slug}' already exists in the project.")
        self.slug = slug


class DepthExceededError(ModgraphError):
    def __init__(self, slug: str, depth: int) -> None:
        super().__init__(f"Maximum dependency depth reached at '{slug}' (depth {depth}).")
        self.slug = slug
        self.depth = depth


class ProviderFetchError(ModgraphError):
    pass


class PersistenceError(ModgraphError):
    pass


class InvalidStateTransition(ModgraphError):
    pass


class BisectionComplete(InvalidStateTransition):
    def __init__(self) -> None:
        super().__init__("bisection complete")


class OperationCancelled(ModgraphError):
    pass
