"""ccmm — CLAUDE.md preset manager."""

__version__ = "0.1.0"
