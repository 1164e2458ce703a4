"""
Core Services Module

Business logic layer wiring the presentation pipeline together.
"""

from core.services.presentation_service import PresentationService, build_presentation_service

__all__ = ['PresentationService', 'build_presentation_service']
