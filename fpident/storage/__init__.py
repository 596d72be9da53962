"""
Template stores: the persistent collection of enrollment records.
"""

from .store import (
    TemplateStore,
    MemoryTemplateStore,
    check_user_id
)
from .sqlite_store import SQLiteTemplateStore

__all__ = [
    'TemplateStore',
    'MemoryTemplateStore',
    'SQLiteTemplateStore',
    'check_user_id',
]
