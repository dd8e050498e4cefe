"""
Delivery Module - Scheduling, persistence and task loading.

Components:
- SM2Scheduler: Spaced repetition algorithm
- EngineStateRepository: Storage port, with in-memory and SQL stores
- TaskCatalog: JSON task loading
"""

from .scheduler import ReviewSession, SM2Config, SM2Scheduler
from .state_store import EngineStateRepository, InMemoryStateStore, SQLStateStore
from .task_catalog import TaskCatalog

__all__ = [
    # Scheduling
    "SM2Scheduler",
    "SM2Config",
    "ReviewSession",
    # Persistence
    "EngineStateRepository",
    "InMemoryStateStore",
    "SQLStateStore",
    # Catalog
    "TaskCatalog",
]
