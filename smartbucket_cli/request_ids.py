from __future__ import annotations

import uuid


def new_request_id() -> str:
    return str(uuid.uuid4())


def normalize_request_id(raw: str | None) -> str:
    return " ".join(str(raw or "").split())


def request_id_or_new(raw: str | None) -> tuple[str, bool]:
    """Return ``(request_id, generated)`` for a user-supplied id."""

    rid = normalize_request_id(raw)
    if rid:
        return rid, False
    return new_request_id(), True
