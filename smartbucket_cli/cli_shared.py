from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from typing import Any

try:
    from dotenv import find_dotenv, load_dotenv  # type: ignore
except Exception:  # pragma: no cover - exercised only when deps are missing
    find_dotenv = None
    load_dotenv = None


class SmartBucketOpsError(Exception):
    pass


class UsageError(SmartBucketOpsError):
    pass


class OpError(SmartBucketOpsError):
    pass


RAINDROP_API_KEY = "RAINDROP_API_KEY"
RAINDROP_API_BASE_URL = "RAINDROP_API_BASE_URL"
RAINDROP_MANIFEST = "RAINDROP_MANIFEST"
SMARTBUCKET_PLAIN_JSON = "SMARTBUCKET_PLAIN_JSON"
SMARTBUCKET_QUIET = "SMARTBUCKET_QUIET"

DEFAULT_API_BASE_URL = "https://api.raindrop.run"
DEFAULT_MANIFEST_FILE = "raindrop.manifest"


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


@dataclass(frozen=True)
class GlobalOpts:
    base_url: str = DEFAULT_API_BASE_URL
    manifest_path: str = DEFAULT_MANIFEST_FILE
    pretty: bool = True
    quiet: bool = False


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _truthy(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _apply_global_env(
    *,
    base_url: str | None = None,
    manifest: str | None = None,
    plain_json: bool = False,
    quiet: bool = False,
) -> GlobalOpts:
    """Resolve flags over env over defaults into one frozen config."""

    resolved_base_url = (
        (base_url or "").strip()
        or _env_or_none(RAINDROP_API_BASE_URL)
        or DEFAULT_API_BASE_URL
    ).rstrip("/")
    if not resolved_base_url.startswith(("http://", "https://")):
        raise UsageError(
            f"invalid API base URL {resolved_base_url!r} (expected http:// or https://)"
        )
    resolved_manifest = (
        (manifest or "").strip() or _env_or_none(RAINDROP_MANIFEST) or DEFAULT_MANIFEST_FILE
    )
    return GlobalOpts(
        base_url=resolved_base_url,
        manifest_path=resolved_manifest,
        pretty=not (plain_json or _truthy(os.environ.get(SMARTBUCKET_PLAIN_JSON))),
        quiet=bool(quiet or _truthy(os.environ.get(SMARTBUCKET_QUIET))),
    )


def _format_json(obj: Any, *, pretty: bool) -> str:
    if pretty:
        return json.dumps(obj, indent=2, ensure_ascii=False)
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _bootstrap_env() -> None:
    if load_dotenv is None:
        raise UsageError(
            "missing dependency: python-dotenv (install the package with pip install -e .)"
        )
    # Load .env from the working directory (or a parent) without overriding
    # already-exported environment values.
    load_dotenv(find_dotenv(usecwd=True))
