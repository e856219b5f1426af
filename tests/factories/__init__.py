"""Test data builders and lookups shared across test modules."""

from tests.factories.game import fetch_agent, history_for, oracle_client, steal_count, verdict

__all__ = ["fetch_agent", "history_for", "oracle_client", "steal_count", "verdict"]
