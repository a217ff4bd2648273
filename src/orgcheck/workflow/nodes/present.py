"""Present node - ask the user how to resolve the current conflict."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from orgcheck.conflict.engine import Abort, Apply, Choose, Confirm, Phase, transition
from orgcheck.conflict.prompt import HELP, parse_command, parse_confirmation
from orgcheck.conflict.report import render_cluster, render_clocks
from orgcheck.core.config import State
from orgcheck.core.errors import InvalidAction
from orgcheck.core.log import logger


@dataclass
class Present(BaseNode[State]):
    """Drive the resolution engine with prompt input.

    Leaves the engine IDLE with a resolution to patch, or ABORTED.
    """

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Patch | Scan | Finalize":
        fix = ctx.state.runtime.fix
        say = fix.output
        engine = fix.engine
        redraw = True

        while engine.phase in (Phase.PRESENTING, Phase.CONFIRMING):
            if engine.phase is Phase.PRESENTING:
                if redraw:
                    say(render_cluster(engine.view))
                    if engine.error is not None:
                        say(f"  ! {engine.error.reason}")
                    redraw = False

                line = _ask(fix.prompt, "resolve (? for help)> ")
                if line is None:
                    engine = transition(engine, Abort())
                    break
                try:
                    event = parse_command(line, engine)
                except InvalidAction as e:
                    say(f"  ! {e.reason}")
                    continue
                if event is None:
                    say(HELP)
                    continue

                engine = transition(engine, event)
                if isinstance(event, Choose):
                    engine = transition(engine, Apply())
                redraw = True
                continue

            say(render_clocks(list(engine.resolution.resulting), "Resulting clocks:"))
            line = _ask(fix.prompt, "apply? [y/n]> ")
            if line is None:
                engine = transition(engine, Abort())
                break
            accepted = parse_confirmation(line)
            if accepted is None:
                say("  ! answer y or n")
                continue
            engine = transition(engine, Confirm(accepted))
            redraw = True

        fix.engine = engine

        if engine.phase is Phase.ABORTED:
            logger.info("Conflict resolution stopped by user")
            from orgcheck.workflow.nodes.finalize import Finalize
            return Finalize()

        resolution = engine.resolution
        if resolution.is_noop:
            logger.info("Keeping clocks as they are", cluster=resolution.cluster_id)
            fix.skipped_clusters.add(resolution.cluster.key)
            from orgcheck.workflow.nodes.scan import Scan
            return Scan()

        from orgcheck.workflow.nodes.patch import Patch
        return Patch()


def _ask(prompt, text: str) -> str | None:
    """Read one line; None at end of input."""
    try:
        return prompt(text)
    except EOFError:
        return None
