"""Local epic cache with GitHub synchronization and commit-driven task tracking."""

__version__ = "0.1.0"
