"""Data providers for margin account snapshots."""

from margin_risk.data.provider_factory import create_provider

__all__ = ["create_provider"]
