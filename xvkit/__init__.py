"""Models of a small teaching kernel's memory, locking, system-call and user-space pieces."""

__version__ = "0.1.0"