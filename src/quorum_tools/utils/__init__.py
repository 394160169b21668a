"""
Utilities module for quorum-tools.

This module provides common utilities like logging configuration.
"""

from __future__ import annotations

from quorum_tools.utils.logger import get_logger, logger, set_verbosity

__all__ = ["get_logger", "logger", "set_verbosity"]
