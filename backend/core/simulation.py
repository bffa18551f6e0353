"""
Open-defecation simulation: converts unmet toilet demand into OD incidents
over a sequence of steps and classifies the outcome.

Rates are kept as exact fractions so floors never drift on binary rounding
(e.g. 10 unserved x 0.30 must yield exactly 3 incidents).
"""
import logging
import math
from enum import Enum
from fractions import Fraction
from typing import List, Optional

from core.errors import InvalidConfig
from core.models import ScenarioConfig, SimulationResult, SimulationStatus, SimulationStep

logger = logging.getLogger(__name__)

DEMAND_RATE = Fraction(1, 10)  # share of agents needing a toilet per step
BASE_CAPACITY = 100  # visits served per step across all facilities
FLOOD_FACTOR = Fraction(2, 5)
BASE_COST = 5  # KES per visit
LEAK_RATE_PAID = Fraction(3, 10)
LEAK_RATE_FREE = Fraction(1, 20)
CRITICAL_THRESHOLD = 150
VISITS_PER_STEP = 5


def demand_for(agent_count: int) -> int:
    return math.floor(agent_count * DEMAND_RATE)


def capacity_for(flood_active: bool) -> int:
    factor = FLOOD_FACTOR if flood_active else Fraction(1)
    return math.floor(BASE_CAPACITY * factor)


def allocate(demand: int, flood_active: bool) -> tuple:
    """Return (served, unserved) for one step."""
    served = min(demand, capacity_for(flood_active))
    return served, demand - served


def effective_cost(subsidy_active: bool) -> int:
    return 0 if subsidy_active else BASE_COST


def leak_rate(cost: int) -> Fraction:
    """Fraction of unserved demand that becomes an OD incident rather than being deferred."""
    return LEAK_RATE_PAID if cost > 0 else LEAK_RATE_FREE


class OpenDefecationAccumulator:
    """Running OD total; step t needs the total after step t-1."""

    def __init__(self, subsidy_active: bool):
        self.cost = effective_cost(subsidy_active)
        self.rate = leak_rate(self.cost)
        self.cumulative = 0

    def add(self, unserved: int) -> int:
        incidents = math.floor(unserved * self.rate)
        self.cumulative += incidents
        return incidents


def classify(total_events: int, agent_count: int) -> tuple:
    """Return (status, coverage_percent). Coverage is deliberately left unclamped."""
    status = SimulationStatus.CRITICAL if total_events > CRITICAL_THRESHOLD else SimulationStatus.STABLE
    opportunities = agent_count * VISITS_PER_STEP
    coverage = float((1 - Fraction(total_events, opportunities)) * 100)
    return status, coverage


class RunnerState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class SimulationRunner:
    """Runs one scenario through demand, allocation, accumulation and classification."""

    def __init__(self, config: ScenarioConfig):
        self.config = config
        self.state = RunnerState.IDLE
        self.result: Optional[SimulationResult] = None

    def _validate(self) -> None:
        cfg = self.config
        if cfg.agent_count <= 0:
            raise InvalidConfig(f"agent_count must be positive, got {cfg.agent_count}")
        if cfg.step_count <= 0:
            raise InvalidConfig(f"step_count must be positive, got {cfg.step_count}")

    def run(self) -> SimulationResult:
        if self.state != RunnerState.IDLE:
            raise RuntimeError(f"Runner already used (state={self.state.value})")
        try:
            self._validate()
        except InvalidConfig as e:
            self.state = RunnerState.FAILED
            logger.warning(f"Simulation rejected: {e}")
            raise

        self.state = RunnerState.RUNNING
        cfg = self.config
        accumulator = OpenDefecationAccumulator(cfg.subsidy_active)
        demand = demand_for(cfg.agent_count)

        steps: List[SimulationStep] = []
        revenue = 0
        for index in range(1, cfg.step_count + 1):
            served, unserved = allocate(demand, cfg.flood_active)
            incidents = accumulator.add(unserved)
            revenue += served * accumulator.cost
            steps.append(SimulationStep(
                index=index,
                demand=demand,
                served=served,
                unserved=unserved,
                incident_events=incidents,
                cumulative_events=accumulator.cumulative,
            ))

        total = accumulator.cumulative
        status, coverage = classify(total, cfg.agent_count)
        self.result = SimulationResult(
            history=tuple(s.cumulative_events for s in steps),
            steps=tuple(steps),
            total_events=total,
            coverage_percent=coverage,
            status=status,
            revenue=revenue,
        )
        self.state = RunnerState.COMPLETE
        logger.info(
            f"Simulation complete: {cfg.agent_count} agents, {cfg.step_count} steps, "
            f"{total} OD events, coverage {coverage:.1f}%, {status.value}"
        )
        return self.result


def run_simulation(config: ScenarioConfig) -> SimulationResult:
    return SimulationRunner(config).run()
