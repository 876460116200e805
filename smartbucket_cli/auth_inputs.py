from __future__ import annotations

from typing import Callable, Sequence


class AuthInputError(ValueError):
    """Raised when the API credential is missing or malformed."""


class MissingApiKeyError(AuthInputError):
    """Raised when no API key is available from the environment."""


def _require_non_empty(val: str | None, *, name: str, hint: str) -> str:
    out = (val or "").strip()
    if not out:
        raise MissingApiKeyError(f"missing {name} ({hint})")
    return out


def resolve_api_key(
    *,
    env_or_none: Callable[..., str | None],
    api_key_env_names: Sequence[str] = ("RAINDROP_API_KEY",),
) -> str:
    hint_env = str(api_key_env_names[0]).strip() if api_key_env_names else "RAINDROP_API_KEY"
    key = _require_non_empty(
        env_or_none(*api_key_env_names),
        name="API key",
        hint=f"export {hint_env}=\"your_api_key_here\"",
    )
    if any(ch.isspace() for ch in key):
        raise AuthInputError("API key must not contain whitespace")
    return key


def api_key_preview(key: str | None, *, visible: int = 10) -> str:
    raw = (key or "").strip()
    if not raw:
        return ""
    if len(raw) <= visible:
        return "*" * len(raw)
    return f"{raw[:visible]}..."


def bearer_headers(api_key: str) -> dict[str, str]:
    return {"authorization": f"Bearer {api_key}"}
