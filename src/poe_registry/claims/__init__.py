"""Claim service and event-log replay."""

from poe_registry.claims.replay import rebuild_store, rebuild_store_async
from poe_registry.claims.service import ClaimService, correlation_scope

__all__ = ["ClaimService", "correlation_scope", "rebuild_store", "rebuild_store_async"]
