"""Raindrop manifest helpers.

The manifest is edited textually, not parsed. The writer assumes the layout
produced by ``raindrop`` itself: a single ``application`` block whose closing
brace sits alone on the last ``}`` line, with buckets declared one per line
inside it. Files that deviate from that layout (several applications, nested
blocks closed on the same line) are not understood.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .cli_shared import UsageError

DEFAULT_APP_NAME = "my-app"

_BUCKET_DECL_RE = re.compile(r'smartbucket "([^"]*)"')
_APPLICATION_MARKER = "application "
_CLOSING_BRACE_LINE = "}"
_INDENT = "    "


class ManifestError(UsageError):
    pass


@dataclass(frozen=True)
class ManifestUpdate:
    action: str
    path: Path
    bucket_name: str
    app_name: str = ""


def read_manifest_text(path: str | Path) -> str:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ManifestError(f"failed to read {p}: not valid UTF-8 ({e.reason} at byte {e.start})") from e
    except OSError as e:
        raise ManifestError(f"failed to read {p}: {e}") from e


def load_bucket_name(path: str | Path) -> str:
    """Return the first ``smartbucket "<name>"`` value, or "" when absent."""

    p = Path(path)
    if not p.is_file():
        return ""
    match = _BUCKET_DECL_RE.search(read_manifest_text(p))
    return match.group(1) if match else ""


def bucket_declaration(name: str) -> str:
    return f'smartbucket "{name}" {{}}'


def _validate_bucket_name(name: str) -> str:
    v = (name or "").strip()
    if not v:
        raise ManifestError("bucket name is required")
    if '"' in v or "\n" in v or "\r" in v:
        raise ManifestError(f"invalid bucket name {v!r} (quotes and newlines are not allowed)")
    return v


def _app_name_or_default(raw: str | None) -> str:
    v = (raw or "").strip()
    if '"' in v:
        raise ManifestError(f"invalid application name {v!r} (quotes are not allowed)")
    return v or DEFAULT_APP_NAME


def new_manifest_text(*, app_name: str, bucket_name: str) -> str:
    return (
        "// Raindrop Manifest\n"
        "// Auto-generated by SmartBucket Manager\n"
        "\n"
        f'application "{app_name}" {{\n'
        f"{_INDENT}{bucket_declaration(bucket_name)}\n"
        "}\n"
    )


def insert_before_last_closing_brace(text: str, line: str) -> str:
    lines = text.splitlines(keepends=True)
    for idx in range(len(lines) - 1, -1, -1):
        if lines[idx].rstrip("\r\n") == _CLOSING_BRACE_LINE:
            lines.insert(idx, line + "\n")
            return "".join(lines)
    raise ManifestError(
        "cannot add bucket: manifest has an application block but no line that is exactly '}'"
    )


def wrap_in_application(text: str, *, app_name: str, bucket_name: str) -> str:
    out = [
        "// Raindrop Manifest\n",
        "// Updated by SmartBucket Manager\n",
        "\n",
        f'application "{app_name}" {{\n',
    ]
    for existing in text.splitlines():
        out.append(f"{_INDENT}{existing}\n")
    out.append(f"{_INDENT}{bucket_declaration(bucket_name)}\n")
    out.append("}\n")
    return "".join(out)


def ensure_bucket(
    path: str | Path,
    name: str,
    *,
    app_name_prompt: Callable[[], str],
) -> ManifestUpdate:
    """Make sure the manifest declares ``name``.

    ``app_name_prompt`` is only called when an application block has to be
    created; a blank answer selects ``my-app``.
    """

    p = Path(path)
    bucket_name = _validate_bucket_name(name)

    if not p.exists():
        app_name = _app_name_or_default(app_name_prompt())
        p.write_text(new_manifest_text(app_name=app_name, bucket_name=bucket_name), encoding="utf-8")
        return ManifestUpdate(action="created", path=p, bucket_name=bucket_name, app_name=app_name)

    text = read_manifest_text(p)
    if f'smartbucket "{bucket_name}"' in text:
        return ManifestUpdate(action="unchanged", path=p, bucket_name=bucket_name)

    if _APPLICATION_MARKER in text:
        updated = insert_before_last_closing_brace(text, _INDENT + bucket_declaration(bucket_name))
        p.write_text(updated, encoding="utf-8")
        return ManifestUpdate(action="appended", path=p, bucket_name=bucket_name)

    app_name = _app_name_or_default(app_name_prompt())
    p.write_text(
        wrap_in_application(text, app_name=app_name, bucket_name=bucket_name),
        encoding="utf-8",
    )
    return ManifestUpdate(action="wrapped", path=p, bucket_name=bucket_name, app_name=app_name)
