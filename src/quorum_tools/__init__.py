"""
quorum-tools - provision Quorum test networks on Docker.

This package provides:
- YAML network descriptions
- Parallel start of Tessera transaction managers and Quorum nodes
- Label-based discovery and teardown of everything a run created
- The ``qctl`` command-line interface
"""

from __future__ import annotations

__version__ = "1.0.0"

# Core exports
from quorum_tools.config import QuorumBuilderConfig, load_config
from quorum_tools.core.builder import QuorumBuilder, destroy
from quorum_tools.errors import QuorumToolsError
from quorum_tools.utils.logger import get_logger

__all__ = [
    "QuorumBuilder",
    "QuorumBuilderConfig",
    "QuorumToolsError",
    "destroy",
    "load_config",
    "get_logger",
    "__version__",
]
