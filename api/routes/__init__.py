"""
API Routes Module

Organizes all API endpoints into logical groups.
"""

from api.routes import content, sessions

__all__ = ['content', 'sessions']
