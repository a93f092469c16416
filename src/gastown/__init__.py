"""Gas Town polecat orchestration."""

__version__ = "0.3.0"
