"""
LangGraph workflow: orchestrates the siting agents in sequence
(candidate generation, then scoring and selection).
"""
import logging
from typing import Callable, Optional

from langgraph.graph import StateGraph, END

from core.geodata import GeodataProvider
from core.models import OptimizationResult, SitingOptions, StudyArea
from core.siting import CancelToken
from core.state import OptimizationState
from agents.data_ingestion import data_ingestion_agent
from agents.site_selection import site_selection_agent

logger = logging.getLogger(__name__)


def build_workflow() -> StateGraph:
    """Build and compile the siting workflow."""
    workflow = StateGraph(OptimizationState)

    workflow.add_node("data_ingestion", data_ingestion_agent)
    workflow.add_node("site_selection", site_selection_agent)

    workflow.set_entry_point("data_ingestion")
    workflow.add_conditional_edges(
        "data_ingestion",
        lambda s: END if s.get("status") == "error" else "site_selection",
        {END: END, "site_selection": "site_selection"},
    )
    workflow.add_edge("site_selection", END)

    return workflow.compile()


AGENT_NAMES = {
    "data_ingestion": "Data Ingestion",
    "site_selection": "Site Selection",
}

# Singleton compiled workflow
_compiled_workflow = None


def get_workflow():
    global _compiled_workflow
    if _compiled_workflow is None:
        _compiled_workflow = build_workflow()
    return _compiled_workflow


def run_optimization(
    provider: GeodataProvider,
    area: StudyArea,
    options: SitingOptions,
    token: Optional[CancelToken] = None,
    on_phase: Optional[Callable[[str], None]] = None,
) -> OptimizationResult:
    """
    Run the siting workflow to completion.
    Re-raises the first agent error; otherwise returns the optimization result.
    """
    app = get_workflow()

    initial_state: OptimizationState = {
        "study_area": area,
        "options": options,
        "provider": provider,
        "cancel_token": token,
        "snapshot": None,
        "result": None,
        "agent_logs": [],
        "phase": "GENERATING_CANDIDATES",
        "status": "running",
        "error": None,
    }
    if on_phase:
        on_phase("GENERATING_CANDIDATES")

    result = None
    for event in app.stream(initial_state, stream_mode="updates"):
        for node_name, node_output in event.items():
            if not node_output:
                continue
            if on_phase and node_output.get("phase"):
                on_phase(node_output["phase"])

            logs = node_output.get("agent_logs", [])
            logger.debug(f"{AGENT_NAMES.get(node_name, node_name)}: {logs[-1] if logs else 'done'}")

            if node_output.get("status") == "error":
                raise node_output["error"]
            if node_output.get("result") is not None:
                result = node_output["result"]

    if result is None:
        raise RuntimeError("Siting workflow finished without a result")
    return result
