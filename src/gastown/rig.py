"""
Town and rig discovery.

A Gas Town workspace ("town") is a directory holding a mayor/ directory.
Rigs are registered in mayor/rigs.json and live at <town>/<rig-name>:

    {
      "rigs": {
        "gastown": {"git_url": "git@github.com:...", "default_branch": "main"}
      }
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from gastown.config import get_town_root_override
from gastown.errors import RigNotFoundError, TownNotFoundError

logger = logging.getLogger(__name__)

TOWN_MARKER = "mayor"
RIGS_CONFIG_NAME = "rigs.json"
DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class Rig:
    """A repository managed by the town."""
    name: str
    path: Path
    default_branch: str = DEFAULT_BRANCH


@dataclass
class RigsConfig:
    rigs: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def find_town_root(start_path: Optional[str] = None) -> Path:
    """Find the town root by walking up from start_path (or cwd).

    An explicit GT_TOWN_ROOT / config town_root wins over discovery.

    Raises:
        TownNotFoundError: If no enclosing directory holds a mayor/ directory
    """
    override = get_town_root_override()
    if override is not None:
        if (override / TOWN_MARKER).is_dir():
            return override.resolve()
        raise TownNotFoundError(str(override))

    if start_path is None:
        start_path = os.getcwd()

    current = Path(start_path).resolve()
    while True:
        if (current / TOWN_MARKER).is_dir():
            return current
        if current == current.parent:
            break
        current = current.parent

    raise TownNotFoundError(str(start_path))


def load_rigs_config(path: Path) -> RigsConfig:
    """Load mayor/rigs.json.

    A missing or unreadable file yields an empty registry, so unknown rigs
    surface later as RigNotFoundError.
    """
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("could not load rigs config %s: %s", path, e)
        return RigsConfig()

    rigs = data.get("rigs") if isinstance(data, dict) else None
    if not isinstance(rigs, dict):
        return RigsConfig()
    return RigsConfig(rigs={name: (entry or {}) for name, entry in rigs.items()})


class RigManager:
    """Resolves rig names to Rig handles within a town."""

    def __init__(self, town_root: Path, rigs_config: Optional[RigsConfig] = None):
        self.town_root = Path(town_root)
        if rigs_config is None:
            rigs_config = load_rigs_config(self.town_root / TOWN_MARKER / RIGS_CONFIG_NAME)
        self.rigs_config = rigs_config

    def get_rig(self, name: str) -> Rig:
        """
        Raises:
            RigNotFoundError: If the rig isn't registered or its directory is missing
        """
        entry = self.rigs_config.rigs.get(name)
        if entry is None:
            raise RigNotFoundError(name)

        path = self.town_root / name
        if not path.is_dir():
            raise RigNotFoundError(name)

        return Rig(
            name=name,
            path=path,
            default_branch=entry.get("default_branch") or DEFAULT_BRANCH,
        )
