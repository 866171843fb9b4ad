"""Event synchronization and idempotent resolution engine.

Submodules are imported directly (``engine.scheduler``, ``engine.resolver``,
...); the feed models import ``engine.outcomes``, so this package stays free
of eager imports.
"""
