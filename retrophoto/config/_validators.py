from __future__ import annotations

from typing import Any


def _parse_int_in_range(value: Any, *, name: str, default: int, minimum: int, maximum: int) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        msg = f"{name} must be a valid integer"
        raise ValueError(msg) from exc
    if parsed < minimum or parsed > maximum:
        msg = f"{name} must be between {minimum} and {maximum}"
        raise ValueError(msg)
    return parsed


def _parse_vibrate_pattern(value: Any) -> tuple[int, ...]:
    """Parse ``"200,100,200"`` (or a sequence) into a vibration pattern."""
    if value in (None, ""):
        return ()
    pieces = value if isinstance(value, list | tuple) else str(value).split(",")
    pattern: list[int] = []
    for piece in pieces:
        text = str(piece).strip()
        if not text:
            continue
        try:
            duration = int(text)
        except ValueError as exc:
            msg = f"Invalid vibration duration: {text!r}"
            raise ValueError(msg) from exc
        if duration < 0 or duration > 10_000:
            msg = "Vibration durations must be between 0 and 10000 ms"
            raise ValueError(msg)
        pattern.append(duration)
    return tuple(pattern)


def _validate_app_path(value: Any, *, name: str, default: str) -> str:
    """Application routes must be same-origin absolute paths."""
    path = str(value or default).strip()
    if not path.startswith("/") or path.startswith("//"):
        msg = f"{name} must be an absolute application path starting with '/'"
        raise ValueError(msg)
    if any(ch.isspace() for ch in path):
        msg = f"{name} cannot contain whitespace"
        raise ValueError(msg)
    return path
