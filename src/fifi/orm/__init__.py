"""SQLAlchemy 2.0 run store.

Modules
-------
base        FifiBase (declarative base) + TimestampMixin
session     Engine factory, FifiSession, fifi_session_factory
tables      playbook_runs, playbook_run_executors, playbook_run_systems
queries     PlaybookRunQueries (the PlaybookRunStore implementation)
"""

from __future__ import annotations

from fifi.orm.base import FifiBase, TimestampMixin
from fifi.orm.queries import PlaybookRunQueries
from fifi.orm.session import FifiSession, create_fifi_engine, fifi_session_factory
from fifi.orm.tables import PlaybookRunExecutorTable, PlaybookRunSystemTable, PlaybookRunTable

__all__ = [
    "FifiBase",
    "TimestampMixin",
    "FifiSession",
    "create_fifi_engine",
    "fifi_session_factory",
    "PlaybookRunQueries",
    "PlaybookRunTable",
    "PlaybookRunExecutorTable",
    "PlaybookRunSystemTable",
]
