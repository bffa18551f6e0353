"""
Agent 1: Data Ingestion Agent
Loads the geodata snapshot (existing toilets, candidate sites, flood zones)
for the study area through the configured provider.
"""
import logging
from typing import Dict, Any

from core.state import OptimizationState

logger = logging.getLogger(__name__)


def data_ingestion_agent(state: OptimizationState) -> Dict[str, Any]:
    """Fetch the study-area snapshot that candidate generation is based on."""
    logger.info("Data Ingestion Agent: starting")

    try:
        token = state.get("cancel_token")
        if token is not None:
            token.raise_if_cancelled()

        snapshot = state["provider"].load_snapshot(state["study_area"])

        log_msg = (
            f"Data Ingestion complete: {len(snapshot.candidates)} candidate sites, "
            f"{len(snapshot.existing)} existing toilets, {len(snapshot.flood_zones)} flood zones "
            f"(snapshot {snapshot.version})"
        )
        logger.info(log_msg)

        return {
            "snapshot": snapshot,
            "agent_logs": state.get("agent_logs", []) + [log_msg],
            "phase": "SCORING_AND_SELECTING",
            "status": "running",
        }
    except Exception as e:
        err = f"Data Ingestion Agent error: {e}"
        logger.error(err)
        return {
            "status": "error",
            "phase": "FAILED",
            "error": e,
            "agent_logs": state.get("agent_logs", []) + [err],
        }
