"""
Claude Blocker - Settings Store

Read and write the Claude Code settings file that hook entries live in.

The file belongs to the user and is shared with other tools, so the document
is held as a typed envelope: the ``hooks`` section we edit, plus a
passthrough bag for every other top-level key. Merge and prune only ever
touch ``hooks``; everything else is written back as it was read.

Unparseable files:
    ``load()`` treats a file that cannot be parsed as an empty document so
    setup is never blocked by a broken file. Whatever was in that file is
    lost on the next save unless the caller backs it up first
    (``create_backup``). ``read()`` is the strict variant for callers that
    must not overwrite what they could not read.
"""

from __future__ import annotations

import json
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


class SettingsError(Exception):
    """Settings file exists but cannot be used as a settings document."""


@dataclass
class SettingsDocument:
    """Settings file contents, split into ``hooks`` and everything else."""

    hooks: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    # Index of "hooks" among the original top-level keys (None = append)
    hooks_position: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SettingsDocument:
        if not isinstance(data, dict):
            raise SettingsError(
                f"expected a JSON object at top level, got {type(data).__name__}"
            )

        hooks = data.get("hooks")
        if hooks is not None and not isinstance(hooks, dict):
            raise SettingsError(
                f"'hooks' must be an object, got {type(hooks).__name__}"
            )

        position = list(data).index("hooks") if "hooks" in data else None
        extra = {k: v for k, v in data.items() if k != "hooks"}
        return cls(hooks=hooks, extra=extra, hooks_position=position)

    def to_dict(self) -> dict[str, Any]:
        """Reassemble the document, keeping ``hooks`` where it was read."""
        if self.hooks is None:
            return dict(self.extra)

        items = list(self.extra.items())
        position = len(items) if self.hooks_position is None else self.hooks_position
        items.insert(min(position, len(items)), ("hooks", self.hooks))
        return dict(items)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"


class SettingsStore:
    """Accessor for one settings file on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        # Reason the last load() fell back to an empty document
        self.last_error: str | None = None

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> SettingsDocument:
        """Load strictly: a missing file is empty, anything unusable raises."""
        if not self.exists():
            return SettingsDocument()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SettingsError(f"Invalid JSON in {self.path}: {e}") from e
        except OSError as e:
            raise SettingsError(f"Cannot read {self.path}: {e}") from e

        try:
            return SettingsDocument.from_dict(data)
        except SettingsError as e:
            raise SettingsError(f"{self.path}: {e}") from e

    def load(self) -> SettingsDocument:
        """Load leniently: an unparseable file becomes an empty document.

        A readable document with a non-object ``hooks`` value still raises,
        since replacing it would silently discard data we understood.
        """
        self.last_error = None
        if not self.exists():
            return SettingsDocument()

        try:
            text = self.path.read_text(encoding="utf-8")
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            self.last_error = str(e)
            sys.stderr.write(f"Error reading {self.path}: {e}\n")
            sys.stderr.write(f"Treating {self.path.name} as empty\n")
            return SettingsDocument()

        if not isinstance(data, dict):
            self.last_error = f"top level is {type(data).__name__}, not an object"
            sys.stderr.write(f"Error reading {self.path}: {self.last_error}\n")
            sys.stderr.write(f"Treating {self.path.name} as empty\n")
            return SettingsDocument()

        try:
            return SettingsDocument.from_dict(data)
        except SettingsError as e:
            raise SettingsError(f"{self.path}: {e}") from e

    def ensure_directory(self) -> bool:
        """Create the parent directory if needed. Returns True if created."""
        parent = self.path.parent
        if parent.is_dir():
            return False
        parent.mkdir(parents=True, exist_ok=True)
        return True

    def save(self, document: SettingsDocument) -> None:
        """Replace the whole file atomically. Last writer wins.

        The new content goes to a temporary file in the same directory,
        which is then renamed over the target, so a failed write leaves
        the existing file as it was.
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document.to_json())
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except BaseException:
            os.unlink(tmp_name)
            raise

    def create_backup(self) -> Path:
        """Create timestamped backup of the settings file."""
        timestamp = datetime.now().strftime("%y%m%d-%H%M")
        backup_path = self.path.with_suffix(f".json.bak-{timestamp}")
        shutil.copy2(self.path, backup_path)
        return backup_path
