"""
Data Package
============
Local persistence for settings, cached weather and prediction history.
"""

from .store import CacheEntry, LocalStore

__all__ = ['CacheEntry', 'LocalStore']
