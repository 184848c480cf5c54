"""Data store implementations for job and ledger reads."""

from roof_insights.store.base import JobStore, Scope, group_by_job
from roof_insights.store.memory import InMemoryJobStore
from roof_insights.store.supabase import SupabaseJobStore

__all__ = ["JobStore", "Scope", "group_by_job", "InMemoryJobStore", "SupabaseJobStore"]
