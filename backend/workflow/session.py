"""
Optimization sessions: at most one current siting run per session, a
wall-clock budget per run, and retention of the last successful result.
"""
import asyncio
import logging
import threading
from collections import OrderedDict
from enum import Enum
from typing import Callable, List, Optional

from core.errors import OptimizationCancelled, OptimizationTimeout
from core.geodata import GeodataProvider
from core.models import Facility, OptimizationResult, SitingOptions, StudyArea
from core.siting import CancelToken
from workflow.graph import run_optimization

logger = logging.getLogger(__name__)


class OptimizationPhase(str, Enum):
    IDLE = "IDLE"
    GENERATING_CANDIDATES = "GENERATING_CANDIDATES"
    SCORING_AND_SELECTING = "SCORING_AND_SELECTING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class OptimizationSession:
    def __init__(
        self,
        provider: GeodataProvider,
        area: StudyArea,
        timeout_s: float = 30.0,
        on_complete: Optional[Callable[[OptimizationResult], None]] = None,
    ):
        self.provider = provider
        self.area = area
        self.timeout_s = timeout_s
        self.on_complete = on_complete
        self.phase = OptimizationPhase.IDLE
        self.last_result: Optional[OptimizationResult] = None
        self.last_error: Optional[Exception] = None
        self._current: Optional[CancelToken] = None
        self._phase_lock = threading.Lock()

    def _phase_setter(self, token: CancelToken) -> Callable[[str], None]:
        def set_phase(phase: str) -> None:
            # abandoned workers (superseded or timed out) must not move the phase
            with self._phase_lock:
                if token is self._current and not token.cancelled:
                    self.phase = OptimizationPhase(phase)
        return set_phase

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()

    def existing_facilities(self) -> List[Facility]:
        return list(self.last_result.existing) if self.last_result else []

    async def optimize(self, options: SitingOptions) -> OptimizationResult:
        """Run siting, superseding any in-flight run of this session."""
        if self._current is not None and not self._current.cancelled:
            logger.info("Superseding in-flight optimization")
            self._current.cancel()

        token = CancelToken(budget_s=self.timeout_s)
        self._current = token

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(
                    run_optimization,
                    self.provider,
                    self.area,
                    options,
                    token,
                    self._phase_setter(token),
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            with self._phase_lock:
                token.cancel()
            error = OptimizationTimeout(self.timeout_s)
            self._fail(token, error)
            raise error
        except Exception as e:
            self._fail(token, e)
            raise

        if token is not self._current:
            raise OptimizationCancelled("Optimization superseded before it could be published")

        self.last_result = result
        self.last_error = None
        self.phase = OptimizationPhase.COMPLETE
        logger.info(f"Optimization complete: {len(result.proposed)} sites proposed")

        if self.on_complete is not None:
            try:
                self.on_complete(result)
            except Exception as e:
                logger.error(f"Post-optimization hook failed: {e}")
        return result

    def _fail(self, token: CancelToken, error: Exception) -> None:
        with self._phase_lock:
            if token is not self._current:
                return
            self.phase = OptimizationPhase.FAILED
            self.last_error = error
        logger.warning(f"Optimization failed ({type(error).__name__}): {error}")


class SessionRegistry:
    """One OptimizationSession per client session id, least recently used evicted first."""

    def __init__(self, factory: Callable[[], OptimizationSession], max_sessions: int = 64):
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be positive, got {max_sessions}")
        self._factory = factory
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, OptimizationSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str = "default") -> OptimizationSession:
        if session_id in self._sessions:
            self._sessions.move_to_end(session_id)
            return self._sessions[session_id]

        session = self._factory()
        self._sessions[session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.cancel()
            logger.info(f"Evicted optimization session {evicted_id}")
        return session

    def peek(self, session_id: str = "default") -> Optional[OptimizationSession]:
        """Look up a session without creating it or refreshing its recency."""
        return self._sessions.get(session_id)
