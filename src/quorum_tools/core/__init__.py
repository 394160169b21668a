"""
Core provisioning logic for quorum-tools.

This module contains the network builder, the parallel executor and the
label-based teardown.
"""

from __future__ import annotations

from quorum_tools.core.builder import QuorumBuilder, destroy
from quorum_tools.errors import BatchError, QuorumToolsError
from quorum_tools.core.parallel import do_work_in_parallel

__all__ = ["QuorumBuilder", "destroy", "do_work_in_parallel", "BatchError", "QuorumToolsError"]
