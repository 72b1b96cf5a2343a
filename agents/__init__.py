from .base import Agent, AgentResult, AggregationError, Orchestrator
from .fetcher import ReviewFetchAgent
from .merger import MergeSortAgent
from .statistics import StatisticsAgent
from .paginator import PaginatorAgent

__all__ = [
    "Agent", "AgentResult", "AggregationError", "Orchestrator",
    "ReviewFetchAgent", "MergeSortAgent",
    "StatisticsAgent", "PaginatorAgent",
]
