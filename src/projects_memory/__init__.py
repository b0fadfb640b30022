"""projects-memory: adaptive review scheduler for long-lived projects."""

from projects_memory.consts import VERSION

__version__ = VERSION
