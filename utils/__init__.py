"""Utility functions"""
from utils.logger import get_logger, log_transcript
from utils.config import get_config_manager, load_global_config

__all__ = ['get_logger', 'log_transcript', 'get_config_manager', 'load_global_config']
