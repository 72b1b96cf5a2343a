"""
Stage base class and pipeline runner
Vendor Review Aggregator

Each aggregation stage is an Agent: parameters of the request go to
`__init__`, the previous stage's output goes to `run()`. `execute()` never
raises; failures come back as an AgentResult with success=False and the
Orchestrator decides whether to stop.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import logging
import time
import traceback

logger = logging.getLogger(__name__)


class AggregationError(RuntimeError):
    """A core aggregation stage failed (never raised for degraded sources)."""


@dataclass
class AgentResult:
    """Outcome of one stage run."""
    agent_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    def __repr__(self):
        status = "ok" if self.success else "FAILED"
        return f"{status} {self.agent_name} ({self.elapsed_ms:.1f}ms)"


class Agent(ABC):
    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    @abstractmethod
    def run(self, data: Any) -> Any:
        raise NotImplementedError

    def describe(self, output: Any) -> Dict[str, Any]:
        """Small facts about a stage's output, kept in AgentResult.metadata."""
        reviews = getattr(output, "reviews", None)
        return {"reviews": len(reviews)} if reviews is not None else {}

    def execute(self, data: Any) -> AgentResult:
        start = time.perf_counter()
        try:
            output = self.run(data)
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            self.logger.error(f"[{self.name}] Failed after {elapsed:.1f}ms: {e}\n{traceback.format_exc()}")
            return AgentResult(agent_name=self.name, success=False, error=str(e), elapsed_ms=elapsed)

        elapsed = (time.perf_counter() - start) * 1000
        self.logger.debug(f"[{self.name}] Done in {elapsed:.1f}ms")
        return AgentResult(
            agent_name=self.name,
            success=True,
            data=output,
            metadata=self.describe(output),
            elapsed_ms=elapsed,
        )

    def __repr__(self):
        return f"<Agent: {self.name}>"


class Orchestrator:
    """
    Runs stages in order, feeding each output to the next stage.
    With stop_on_failure the first failing stage's result is returned.
    """

    def __init__(self, agents: List[Agent], stop_on_failure: bool = True):
        self.agents = agents
        self.stop_on_failure = stop_on_failure
        self.logger = logging.getLogger("orchestrator")
        self.run_history: List[AgentResult] = []

    @property
    def elapsed_ms(self) -> float:
        return sum(r.elapsed_ms for r in self.run_history)

    def execute(self, input_data: Any) -> AgentResult:
        self.run_history = []
        data = input_data
        last_ok: Optional[AgentResult] = None

        for agent in self.agents:
            result = agent.execute(data)
            self.run_history.append(result)
            if result.success:
                data, last_ok = result.data, result
                continue
            self.logger.error(f"Stage '{agent.name}' failed: {result.error}")
            if self.stop_on_failure:
                return result

        self.logger.info(
            f"Pipeline complete: {len(self.run_history)} stages "
            f"in {self.elapsed_ms:.1f}ms"
        )
        return last_ok or self.run_history[-1]

    def summary(self) -> str:
        lines = ["Pipeline Summary:"]
        lines.extend(f"  {r}" for r in self.run_history)
        return "\n".join(lines)
