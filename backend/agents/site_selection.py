"""
Agent 2: Site Selection Agent
Scores candidate sites against existing coverage and picks new toilet
locations with greedy max-min placement.
"""
import logging
from typing import Dict, Any

from core.siting import GreedySiteSelector
from core.state import OptimizationState

logger = logging.getLogger(__name__)


def site_selection_agent(state: OptimizationState) -> Dict[str, Any]:
    """Run greedy siting over the snapshot's candidate pool."""
    logger.info("Site Selection Agent: scoring candidates")

    try:
        snapshot = state["snapshot"]
        options = state["options"]
        selector = GreedySiteSelector(state["study_area"], snapshot.flood_zones)
        result = selector.select(
            snapshot.existing,
            snapshot.candidates,
            options,
            token=state.get("cancel_token"),
        )
        result = result.model_copy(update={
            "stats": result.stats.model_copy(update={
                "graph_nodes": snapshot.graph_nodes,
                "rivers_count": snapshot.rivers_count,
            }),
        })

        top = result.proposed[0].score if result.proposed else 0.0
        log_msg = (
            f"Site Selection: {len(result.proposed)} of {options.num_locations} sites proposed "
            f"from {result.stats.candidates_considered} candidates. Top score {top:.1f}m."
        )
        logger.info(log_msg)

        return {
            "result": result,
            "agent_logs": state.get("agent_logs", []) + [log_msg],
            "phase": "COMPLETE",
            "status": "completed",
        }
    except Exception as e:
        err = f"Site Selection Agent error: {e}"
        logger.error(err)
        return {
            "status": "error",
            "phase": "FAILED",
            "error": e,
            "agent_logs": state.get("agent_logs", []) + [err],
        }
