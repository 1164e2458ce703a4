"""
Storage Module
"""

from modules.storage.base import TranscriptStore
from modules.storage.sql_store import SQLStore

__all__ = ['TranscriptStore', 'SQLStore']
