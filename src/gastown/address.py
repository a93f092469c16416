"""Spawn address parsing: "rig/polecat" or "rig"."""

import re
from typing import Optional, Tuple

from gastown.errors import InvalidAddressError

ADDRESS_SEPARATOR = "/"

# tmux rewrites '.' and ':' in session names, and '/' or '..' would move the
# worktree out of <rig>/polecats/
_INVALID_NAME_CHARS = re.compile(r"[.:/\s]")


def parse_spawn_address(address: str) -> Tuple[str, Optional[str]]:
    """
    Split a spawn address into rig and polecat name.

    Without a separator the whole address is the rig and the polecat name is
    None (one will be generated). An empty polecat segment ("gastown/") is
    also treated as "no name given".

    Raises:
        InvalidAddressError: If the rig segment is empty, or the polecat name
            contains '.', ':', '/' or whitespace
    """
    if ADDRESS_SEPARATOR not in address:
        if not address:
            raise InvalidAddressError(address)
        return address, None

    rig_name, polecat_name = address.split(ADDRESS_SEPARATOR, 1)
    if not rig_name:
        raise InvalidAddressError(address)
    if polecat_name and _INVALID_NAME_CHARS.search(polecat_name):
        raise InvalidAddressError(
            address, f"polecat name '{polecat_name}' may not contain '.', ':', '/' or whitespace"
        )
    return rig_name, polecat_name or None
