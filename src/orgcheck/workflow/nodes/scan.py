"""Scan node - read files and queue the conflicts to resolve."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from orgcheck.clocks.extract import extract_files
from orgcheck.conflict.engine import Advance, Phase, start, transition
from orgcheck.conflict.index import clusters_of, resolve_intervals
from orgcheck.core.config import State
from orgcheck.core.log import logger
from orgcheck.core.result import RunReport


@dataclass
class Scan(BaseNode[State]):
    """Find the conflicts still open and present the first one.

    After a patch the files are read again so that spans and checksums
    match what is on disk.
    """

    rescan: bool = False

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Present | Finalize":
        fix = ctx.state.runtime.fix

        if self.rescan or fix.extraction is None:
            # Skips were recorded by the first scan.
            fix.extraction = extract_files(fix.files, RunReport())

        policy = ctx.state.config.conflicts.running_clock_end
        intervals = resolve_intervals(fix.extraction.clocks, fix.now, policy)
        clusters = clusters_of(intervals)
        fix.remaining = len(clusters)
        pending = [c for c in clusters if c.key not in fix.skipped_clusters]
        logger.debug(
            "Scanned for conflicts",
            conflicts=len(clusters),
            pending=len(pending),
        )

        fix.engine = transition(
            start(
                pending,
                first_free_id=len(fix.extraction.clocks),
                intervals=intervals,
                now=fix.now,
                policy=policy,
            ),
            Advance(),
        )

        if fix.engine.phase is Phase.FINISHED:
            from orgcheck.workflow.nodes.finalize import Finalize
            return Finalize()

        from orgcheck.workflow.nodes.present import Present
        return Present()
