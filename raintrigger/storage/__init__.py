"""Trigger and cooldown persistence backends."""
from .base import TriggerStore
from .memory import InMemoryTriggerStore
from .sql import SqlCooldownRepository, SqlTriggerStore

__all__ = [
    "TriggerStore",
    "InMemoryTriggerStore",
    "SqlTriggerStore",
    "SqlCooldownRepository",
]
