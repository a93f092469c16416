"""Lightweight configuration loader for gt.

Reads optional settings from ~/.gastown/config.yaml with safe defaults.

Supported keys:
- town_root: Gas Town root directory (default: discovered from cwd)
- agent_command: command started inside each polecat session
  (default: 'claude --dangerously-skip-permissions')
- session_prefix: tmux session name prefix (default: 'gt')
- session_ready_timeout: seconds to wait for a new session to show its prompt (default: 15.0)
- session_poll_interval: seconds between readiness checks (default: 0.5)
- beads_cli: path to the bd executable (default: 'bd')
- lock_timeout: seconds to wait for a polecat name lock (default: 10.0)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def _defaults() -> Dict[str, Any]:
    return {
        'town_root': None,
        'agent_command': 'claude --dangerously-skip-permissions',
        'session_prefix': 'gt',
        'session_ready_timeout': 15.0,
        'session_poll_interval': 0.5,
        'beads_cli': 'bd',
        'lock_timeout': 10.0,
    }


def _as_float(value: Any, key: str) -> float:
    """Coerce a numeric setting, falling back to the default when it doesn't parse."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(_defaults()[key])


def get_config() -> Dict[str, Any]:
    """Load config.yaml once and cache the result."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    cfg_path = Path.home() / '.gastown' / 'config.yaml'
    data: Dict[str, Any] = {}
    if cfg_path.exists():
        try:
            loaded = yaml.safe_load(cfg_path.read_text())
            if isinstance(loaded, dict):
                data = loaded
        except (OSError, yaml.YAMLError):
            # Ignore malformed configs; fall back to defaults
            data = {}

    merged = {**_defaults(), **data}
    _CONFIG_CACHE = merged
    return merged


def get_town_root_override() -> Optional[Path]:
    """
    Get an explicit town root, if one is configured.

    Priority: GT_TOWN_ROOT env var > config file > None (discover from cwd).
    """
    env_root = os.getenv('GT_TOWN_ROOT')
    if env_root:
        return Path(env_root).expanduser()
    configured = get_config().get('town_root')
    if configured:
        return Path(configured).expanduser()
    return None


def get_agent_command() -> str:
    return str(get_config().get('agent_command', _defaults()['agent_command']))


def get_session_prefix() -> str:
    return str(get_config().get('session_prefix', _defaults()['session_prefix']))


def get_session_ready_timeout() -> float:
    """
    Get how long a freshly started session may take to show its prompt.

    Priority: GT_SPAWN_TIMEOUT env var > config file > default (15s).
    Values that aren't numbers are skipped.
    """
    env_timeout = os.getenv('GT_SPAWN_TIMEOUT')
    if env_timeout:
        try:
            return float(env_timeout)
        except ValueError:
            pass
    return _as_float(get_config().get('session_ready_timeout'), 'session_ready_timeout')


def get_session_poll_interval() -> float:
    return _as_float(get_config().get('session_poll_interval'), 'session_poll_interval')


def get_beads_cli() -> str:
    return str(get_config().get('beads_cli', _defaults()['beads_cli']))


def get_lock_timeout() -> float:
    return _as_float(get_config().get('lock_timeout'), 'lock_timeout')
