"""Patch node - write an accepted resolution to disk."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from orgcheck.conflict.patch import apply_resolution
from orgcheck.core.config import State
from orgcheck.core.log import logger


@dataclass
class Patch(BaseNode[State]):
    """Apply the accepted resolution file by file, then rescan."""

    async def run(self, ctx: GraphRunContext[State]) -> "Scan":
        fix = ctx.state.runtime.fix
        report = ctx.state.runtime.report
        resolution = fix.engine.resolution

        failures = len(report.skipped)
        with logger.span("patch", cluster=resolution.cluster_id):
            apply_resolution(resolution, fix.extraction.sources, report)

        if len(report.skipped) > failures:
            # Not offered again in this run.
            fix.skipped_clusters.add(resolution.cluster.key)
            fix.output(
                f"  ! conflict #{resolution.cluster_id} was not fully patched"
            )

        from orgcheck.workflow.nodes.scan import Scan
        return Scan(rescan=True)
