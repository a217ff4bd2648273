"""Finalize node - report what is left and pick the exit code."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from orgcheck.core.config import State
from orgcheck.core.log import logger


@dataclass
class Finalize(BaseNode[State, None, int]):
    """End the fix loop."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[int]:
        """Record the conflicts still open after fixing.

        Returns:
            End[int]: Exit code of the run
        """
        fix = ctx.state.runtime.fix
        report = ctx.state.runtime.report

        report.conflicts = fix.remaining
        logger.info(
            "Conflict resolution finished",
            applied=report.resolutions_applied,
            remaining=fix.remaining,
        )
        return End(report.exit_code)
