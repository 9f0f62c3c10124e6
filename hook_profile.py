"""
Claude Blocker - Hook Profile

The hook entries Claude Blocker owns, and the merge / prune logic that puts
them into a settings document and takes them out again.

Ownership:
    A hook action is ours when its command contains the listener signature
    (``localhost:<port>/hook``). Two checks use it:

    - ``has_ours`` (loose): any action in any group matches. Used before
      appending, so a group that mixes our command with the user's still
      counts as "already installed".
    - ``is_ours`` (strict): every action in the group matches. Used when
      pruning, so mixed groups are never deleted.

A ``HookProfile`` bundles the event list, command and settings path for one
target, so the same merge / prune code serves every target.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from settings_store import SettingsDocument

DEFAULT_PORT = 8765
ENV_PORT = "CLAUDE_BLOCKER_PORT"
HOOK_PATH = "/hook"

# Event name -> matcher (None = event takes no matcher)
HOOK_EVENTS: dict[str, str | None] = {
    "UserPromptSubmit": None,
    "PreToolUse": "*",
    "Stop": None,
    "SessionStart": None,
    "SessionEnd": None,
    "Notification": "permission_prompt",
}

EVENT_DESCRIPTIONS = {
    "UserPromptSubmit": "work starting",
    "PreToolUse": "tool executing",
    "Stop": "work finished",
    "SessionStart": "session began",
    "SessionEnd": "session ended",
    "Notification": "permission prompts",
}


def get_global_settings_path() -> Path:
    """Return path to global Claude settings."""
    return Path.home() / ".claude" / "settings.json"


def get_project_settings_path() -> Path:
    """Return path to project Claude settings."""
    return Path.cwd() / ".claude" / "settings.json"


def hook_signature(port: int) -> str:
    """Substring that marks a hook command as ours."""
    return f"localhost:{port}{HOOK_PATH}"


def generate_curl_command(port: int) -> str:
    """Generate the curl command every hook event runs.

    The hook payload arrives on stdin and is sent as the POST body. The
    trailing '&' and discarded output keep Claude Code from waiting on the
    listener, so hooks cost nothing when it is not running.
    """
    return (
        f"curl -s -X POST http://{hook_signature(port)} "
        f"-H 'Content-Type: application/json' "
        f'-d "$(cat)" > /dev/null 2>&1 &'
    )


@dataclass(frozen=True)
class HookProfile:
    """Hook entries for one settings file."""

    name: str
    settings_path: Path
    command: str
    signature: str
    # (event name, matcher) pairs, kept as a tuple so profiles stay hashable
    events: tuple[tuple[str, str | None], ...] = tuple(HOOK_EVENTS.items())

    @property
    def event_names(self) -> tuple[str, ...]:
        return tuple(event for event, _ in self.events)

    def canonical_group(self, event: str) -> dict[str, Any]:
        group: dict[str, Any] = {}
        matcher = dict(self.events)[event]
        if matcher is not None:
            group["matcher"] = matcher
        group["hooks"] = [{"type": "command", "command": self.command}]
        return group

    def catalog(self) -> dict[str, list[dict[str, Any]]]:
        """Event name -> our hook group list. Fresh copies on every call."""
        return {event: [self.canonical_group(event)] for event in self.event_names}


def claude_profile(port: int = DEFAULT_PORT, scope: str = "global") -> HookProfile:
    """Build the profile for Claude Code's global or project settings."""
    if scope == "global":
        path = get_global_settings_path()
    elif scope == "project":
        path = get_project_settings_path()
    else:
        raise ValueError(f"Unknown scope: {scope!r}")

    return HookProfile(
        name=f"Claude Code ({scope})",
        settings_path=path,
        command=generate_curl_command(port),
        signature=hook_signature(port),
    )


def _is_our_action(action: Any, signature: str) -> bool:
    if not isinstance(action, dict):
        return False
    command = action.get("command")
    return isinstance(command, str) and signature in command


def is_ours(group: Any, signature: str) -> bool:
    """True if every action in the group is ours (strict, fail-closed)."""
    if not isinstance(group, dict):
        return False
    actions = group.get("hooks")
    if not isinstance(actions, list) or not actions:
        return False
    return all(_is_our_action(action, signature) for action in actions)


def has_ours(groups: Any, signature: str) -> bool:
    """True if any group holds at least one of our actions (loose)."""
    if not isinstance(groups, list):
        return False
    for group in groups:
        if not isinstance(group, dict):
            continue
        actions = group.get("hooks")
        if not isinstance(actions, list):
            continue
        if any(_is_our_action(action, signature) for action in actions):
            return True
    return False


def merge_hooks(document: SettingsDocument, profile: HookProfile) -> SettingsDocument:
    """Return a copy of the document with our hook groups added.

    Existing groups keep their order and content; ours are appended only to
    events that do not already carry one.
    """
    result = copy.deepcopy(document)
    if result.hooks is None:
        result.hooks = {}

    for event, ours in profile.catalog().items():
        existing = result.hooks.get(event)
        if not isinstance(existing, list):
            result.hooks[event] = ours
        elif not has_ours(existing, profile.signature):
            result.hooks[event] = existing + ours
        # Already present: leave as is

    return result


def prune_hooks(document: SettingsDocument, profile: HookProfile) -> SettingsDocument:
    """Return a copy of the document with only our hook groups removed."""
    result = copy.deepcopy(document)
    if result.hooks is None:
        return result

    for event in profile.event_names:
        existing = result.hooks.get(event)
        if not isinstance(existing, list):
            continue
        filtered = [g for g in existing if not is_ours(g, profile.signature)]
        if filtered:
            result.hooks[event] = filtered
        else:
            del result.hooks[event]

    # Remove empty hooks dict
    if not result.hooks:
        result.hooks = None

    return result
