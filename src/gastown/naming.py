"""
Polecat naming for gt spawn.

Auto-generated polecat names come from a themed pool, drawn in shuffled order
so repeated spawns don't keep picking the same name.
"""

import random
from typing import Iterable, List, Optional, Sequence

# Mad Max: Fury Road themed names for auto-generated polecats
POLECAT_NAMES = [
    "Nux", "Toast", "Capable", "Cheedo", "Dag", "Rictus", "Slit", "Morsov",
    "Ace", "Coma", "Valkyrie", "Keeper", "Vuvalini", "Organic", "Immortan",
    "Corpus", "Doof", "Scabrous", "Splendid", "Fragile",
]


class NameGenerator:
    """Generates polecat names that don't collide with existing ones."""

    def __init__(self, pool: Optional[Sequence[str]] = None, rng: Optional[random.Random] = None):
        """
        Args:
            pool: Candidate names (defaults to POLECAT_NAMES). Must be non-empty.
            rng: Randomness source used for shuffling. Pass a seeded
                 random.Random for deterministic output.
        """
        self.pool: List[str] = list(pool if pool is not None else POLECAT_NAMES)
        if not self.pool:
            raise ValueError("name pool must not be empty")
        self.rng = rng if rng is not None else random.Random()

    def generate(self, existing: Iterable[str]) -> str:
        """
        Return a name that is not in `existing`.

        Tries the pool in shuffled order first. When every pool name is taken,
        falls back to numeric suffixes on the first shuffled name: Nux2, Nux3, ...
        """
        taken = set(existing)

        shuffled = list(self.pool)
        self.rng.shuffle(shuffled)

        for name in shuffled:
            if name not in taken:
                return name

        base = shuffled[0]
        suffix = 2
        while True:
            name = f"{base}{suffix}"
            if name not in taken:
                return name
            suffix += 1
