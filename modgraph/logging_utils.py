from __future__ import annotations

LEVEL_DEFAULT = "info"


def _normalize_level(level: str | None) -> str:
    if not level:
        return LEVEL_DEFAULT
    return level.strip().lower() or LEVEL_DEFAULT


def log(message: str, level: str = LEVEL_DEFAULT, indent: int = 0) -> None:
    prefix = " " * max(indent, 0)
    normalized = _normalize_level(level)
    print(f"{prefix}[{normalized}] {message}")


def log_info(message: str, indent: int = 0) -> None:
    log(message, "info", indent)


def log_warn(message: str, indent: int = 0) -> None:
    log(message, "warn", indent)


def log_error(message: str, indent: int = 0) -> None:
    log(message, "error", indent)


def log_conflict(message: str, indent: int = 0) -> None:
    log(message, "conflict", indent)


def log_ok(message: str, indent: int = 0) -> None:
    log(message, "ok", indent)


def log_summary(succeeded: int, total: int, action: str) -> None:
    """Report a batch outcome as 'N of M' with a level matching the result."""

    message = f"{action} {succeeded} of {total}"
    if succeeded == total:
        log_ok(message)
    else:
        log_warn(message)
