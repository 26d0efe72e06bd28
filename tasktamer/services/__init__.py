"""
Services for Task Tamer.

Upstream completion client, bounded state store, milestone motivation
cache and the conversation workspace.
"""

from tasktamer.services.llm_client import CompletionClient, HttpCompletionClient
from tasktamer.services.motivation import MilestoneMotivationCache, MotivationGenerator
from tasktamer.services.state_store import BoundedStateStore

__all__ = [
    "CompletionClient",
    "HttpCompletionClient",
    "MilestoneMotivationCache",
    "MotivationGenerator",
    "BoundedStateStore",
]
