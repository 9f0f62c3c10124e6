#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.10"
# dependencies = ["pyyaml", "pygments"]
# ///
"""
Claude Blocker - Hook Installer

Safely add or remove the Claude Blocker hooks in Claude Code settings.
Our entries are appended next to whatever hooks you already have, and
removal takes out only the groups we added.

Usage:
    ./install_hooks.py                    # Prompt for setup if not configured
    ./install_hooks.py --setup            # Install to ~/.claude/settings.json
    ./install_hooks.py --setup --project  # Install to .claude/settings.json
    ./install_hooks.py --remove           # Remove Claude Blocker hooks
    ./install_hooks.py --check            # Exit 0 if configured, 1 if not
    ./install_hooks.py --show             # Print current hooks as YAML
    ./install_hooks.py --port 9000        # Custom listener port
    ./install_hooks.py --setup --dry-run  # Preview changes
"""

from __future__ import annotations

import argparse
import difflib
import os
import sys
from typing import Any

import yaml
from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import DiffLexer, YamlLexer

from hook_profile import (
    DEFAULT_PORT,
    ENV_PORT,
    EVENT_DESCRIPTIONS,
    HookProfile,
    claude_profile,
    merge_hooks,
    prune_hooks,
)
from settings_store import SettingsDocument, SettingsError, SettingsStore


class _MultilineYamlDumper(yaml.SafeDumper):
    """YAML dumper that renders strings containing newlines as block scalars (|)."""


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.Node:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_MultilineYamlDumper.add_representer(str, _str_representer)


def _print_highlighted(text: str, lexer: Any) -> None:
    """Print text, colored when stdout is a terminal."""
    if sys.stdout.isatty():
        print(highlight(text, lexer, Terminal256Formatter()), end="", flush=True)
    else:
        print(text, end="", flush=True)


def preview(profile: HookProfile, old: SettingsDocument, new: SettingsDocument) -> None:
    """Display unified diff between current and proposed settings."""
    old_content = old.to_json() if old.to_dict() else "{}\n"
    diff = difflib.unified_diff(
        old_content.splitlines(keepends=True),
        new.to_json().splitlines(keepends=True),
        fromfile=f"{profile.settings_path} (current)",
        tofile=f"{profile.settings_path} (new)",
    )

    diff_text = "".join(diff)
    if diff_text:
        _print_highlighted(diff_text, DiffLexer())
    else:
        print("No changes.")


def print_setup_summary(profile: HookProfile) -> None:
    """Confirmation box listing the configured hooks."""
    width = 49
    lines = [
        "",
        "Claude Blocker Setup Complete!",
        "",
        "Hooks configured in:",
        str(profile.settings_path),
        "",
        "Configured hooks:",
        *(f"- {event} ({EVENT_DESCRIPTIONS.get(event, event)})" for event in profile.event_names),
        "",
        "Next: start the Claude Blocker server",
        "",
    ]
    print("┌" + "─" * width + "┐")
    for line in lines:
        print(f"│   {line}".ljust(width + 1) + "│")
    print("└" + "─" * width + "┘")


def setup(profile: HookProfile, dry_run: bool = False) -> bool:
    """Merge our hooks into the settings file. Returns True on success."""
    store = SettingsStore(profile.settings_path)

    try:
        if not dry_run and store.ensure_directory():
            print(f"Created {store.path.parent}")
        existing = store.load()
    except SettingsError as e:
        sys.stderr.write(f"Error: {e}\n")
        sys.stderr.write("Fix or remove the 'hooks' entry and run setup again.\n")
        return False
    except OSError as e:
        sys.stderr.write(f"Error: cannot create {store.path.parent}: {e}\n")
        return False

    if store.last_error is not None:
        print(f"Creating new {store.path.name}")
    elif store.exists():
        print(f"Loaded existing {store.path.name}")

    merged = merge_hooks(existing, profile)

    if dry_run:
        print("\n--- Changes ---")
        preview(profile, existing, merged)
        print("\n[Dry run - no changes made]")
        return True

    try:
        # Keep the unreadable original: the save below replaces it
        if store.last_error is not None:
            backup_path = store.create_backup()
            print(f"Backup created: {backup_path}")
        store.save(merged)
    except OSError as e:
        sys.stderr.write(f"Error writing {store.path}: {e}\n")
        return False

    print_setup_summary(profile)
    return True


def remove(profile: HookProfile, dry_run: bool = False) -> bool:
    """Remove our hooks, keeping everything else. Returns True on success."""
    store = SettingsStore(profile.settings_path)

    if not store.exists():
        print(f"No {store.path.name} found, nothing to remove.")
        return True

    try:
        existing = store.read()
    except SettingsError as e:
        sys.stderr.write(f"Error removing hooks: {e}\n")
        return False

    if existing.hooks is None:
        print(f"No hooks found in {store.path.name}")
        return True

    pruned = prune_hooks(existing, profile)

    if dry_run:
        print("\n--- Changes ---")
        preview(profile, existing, pruned)
        print("\n[Dry run - no changes made]")
        return True

    try:
        store.save(pruned)
    except OSError as e:
        sys.stderr.write(f"Error writing {store.path}: {e}\n")
        return False

    print(f"Claude Blocker hooks removed from {store.path.name}")
    return True


def is_configured(profile: HookProfile) -> bool:
    """True if any of our event names has an entry in the hooks section.

    Only the key is checked, not whether the entry is ours: this decides
    whether to offer first-run setup, nothing more.
    """
    store = SettingsStore(profile.settings_path)
    if not store.exists():
        return False

    try:
        document = store.read()
    except SettingsError:
        return False

    if not document.hooks:
        return False
    return any(event in document.hooks for event in profile.event_names)


def show(profile: HookProfile) -> bool:
    """Print the current hooks section as YAML."""
    store = SettingsStore(profile.settings_path)
    try:
        document = store.read()
    except SettingsError as e:
        sys.stderr.write(f"Error: {e}\n")
        return False

    if not document.hooks:
        print(f"No hooks configured in {store.path}")
        return True

    yaml_text = yaml.dump(
        {"hooks": document.hooks}, Dumper=_MultilineYamlDumper,
        default_flow_style=False, sort_keys=False, allow_unicode=True,
    )
    _print_highlighted(yaml_text, YamlLexer())
    return True


def prompt_confirm(message: str, default: bool = False) -> bool:
    """Prompt user for yes/no confirmation."""
    suffix = " (Y/n) " if default else " (y/N) "
    try:
        response = input(message + suffix).strip().lower()
    except EOFError:
        return default

    if not response:
        return default
    return response in ("y", "yes")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Install Claude Blocker hooks into Claude Code settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    ./install_hooks.py                    # Prompt for setup on first run
    ./install_hooks.py --setup            # Setup hooks
    ./install_hooks.py --remove           # Remove hooks
    ./install_hooks.py --port 9000        # Use custom port

Port precedence: --port > ${ENV_PORT} > {DEFAULT_PORT}
        """,
    )

    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--setup",
        dest="action",
        action="store_const",
        const="setup",
        help="Add Claude Blocker hooks to settings",
    )
    action.add_argument(
        "--remove",
        dest="action",
        action="store_const",
        const="remove",
        help="Remove Claude Blocker hooks from settings",
    )
    action.add_argument(
        "--check",
        dest="action",
        action="store_const",
        const="check",
        help="Exit 0 if hooks are configured, 1 otherwise",
    )
    action.add_argument(
        "--show",
        dest="action",
        action="store_const",
        const="show",
        help="Print the current hooks section as YAML",
    )

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--global",
        dest="scope",
        action="store_const",
        const="global",
        help="Use ~/.claude/settings.json (default)",
    )
    scope.add_argument(
        "--project",
        dest="scope",
        action="store_const",
        const="project",
        help="Use .claude/settings.json in the current directory",
    )
    parser.set_defaults(scope="global")

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port of the Claude Blocker server (default: ${ENV_PORT} or {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be changed without writing",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip the first-run setup prompt",
    )

    return parser.parse_args(argv)


def get_port(cli_port: int | None) -> int:
    """Determine port with precedence: CLI > env > default."""
    if cli_port is not None:
        return cli_port
    env_port = os.environ.get(ENV_PORT)
    if env_port:
        try:
            return int(env_port)
        except ValueError:
            sys.stderr.write(f"Warning: Invalid {ENV_PORT}='{env_port}', using default\n")
    return DEFAULT_PORT


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    port = get_port(args.port)
    if not 0 < port < 65536:
        sys.stderr.write("Invalid port number\n")
        sys.exit(1)

    profile = claude_profile(port, args.scope)

    if args.action == "setup":
        sys.exit(0 if setup(profile, args.dry_run) else 1)
    if args.action == "remove":
        sys.exit(0 if remove(profile, args.dry_run) else 1)
    if args.action == "check":
        configured = is_configured(profile)
        print(f"{profile.name}: {'configured' if configured else 'not configured'}")
        sys.exit(0 if configured else 1)
    if args.action == "show":
        sys.exit(0 if show(profile) else 1)

    # No action: offer first-run setup
    if is_configured(profile):
        print(f"Claude Blocker hooks are configured in {profile.settings_path}")
        return

    print("Claude Blocker hooks are not configured yet.\n")
    if args.yes or prompt_confirm("Would you like to set them up now?", default=True):
        sys.exit(0 if setup(profile, args.dry_run) else 1)
    print("\nSkipping setup. You can run './install_hooks.py --setup' later.\n")


if __name__ == "__main__":
    main()
