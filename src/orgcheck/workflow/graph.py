"""Graph workflow definition."""

from pydantic_graph import Graph

from orgcheck.core.config import State
from orgcheck.core.log import logger


def create_workflow():
    """Create the conflict fix graph.

    Scan → Present → Patch → Scan → ... → Finalize

    Present goes back to Scan when a conflict is kept, and to Finalize
    when the user quits.

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from orgcheck.workflow.nodes.finalize import Finalize
    from orgcheck.workflow.nodes.patch import Patch
    from orgcheck.workflow.nodes.present import Present
    from orgcheck.workflow.nodes.scan import Scan

    workflow = Graph(
        nodes=(
            Scan,
            Present,
            Patch,
            Finalize,
        ),
        state_type=State
    )

    return workflow
