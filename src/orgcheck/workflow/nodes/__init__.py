"""Workflow nodes for the conflict fix loop."""

from orgcheck.workflow.nodes.finalize import Finalize
from orgcheck.workflow.nodes.patch import Patch
from orgcheck.workflow.nodes.present import Present
from orgcheck.workflow.nodes.scan import Scan

__all__ = [
    "Scan",
    "Present",
    "Patch",
    "Finalize",
]
