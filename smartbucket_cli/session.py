from __future__ import annotations

from pathlib import Path
from typing import Callable

from .cli_shared import GlobalOpts
from .manifest import load_bucket_name


class Session:
    """Interactive session state: the active bucket name.

    Loaded from the manifest at startup, overwritten by user input when no
    bucket is configured, and reloaded after the manifest is rewritten.
    """

    def __init__(self, opts: GlobalOpts, *, bucket_name: str = "") -> None:
        self.opts = opts
        self.bucket_name = bucket_name

    @property
    def manifest_path(self) -> Path:
        return Path(self.opts.manifest_path)

    def load(self) -> str:
        self.bucket_name = load_bucket_name(self.manifest_path)
        return self.bucket_name

    def reload(self) -> str:
        """Re-read the manifest, keeping the current name if it has none."""
        loaded = load_bucket_name(self.manifest_path)
        if loaded:
            self.bucket_name = loaded
        return self.bucket_name

    def resolve_bucket(self, prompt: Callable[[str], str], *, on_missing: Callable[[], None] | None = None) -> str:
        if not self.bucket_name:
            if on_missing is not None:
                on_missing()
            self.bucket_name = (prompt("Enter bucket name") or "").strip()
        return self.bucket_name
