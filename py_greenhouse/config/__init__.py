"""
Configuration for the greenhouse planner service.
"""

from .config import Settings, settings

__all__ = ['Settings', 'settings']
