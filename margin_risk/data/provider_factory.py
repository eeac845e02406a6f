"""Factory for creating the appropriate AccountDataProvider."""

from __future__ import annotations

import json
import logging
import os
from decimal import InvalidOperation

from margin_risk.data.constants import SNAPSHOT_ENV_VAR
from margin_risk.data.interfaces import AccountDataProvider
from margin_risk.data.snapshot import SnapshotDataProvider
from margin_risk.data.static_params import StaticDataProvider

logger = logging.getLogger(__name__)


def create_provider(snapshot_path: str | None = None) -> AccountDataProvider:
    """Create a data provider, selecting a snapshot file or static data.

    Parameters
    ----------
    snapshot_path : str | None
        JSON snapshot to serve accounts from.  Falls back to the
        ``MARGIN_RISK_SNAPSHOT`` environment variable when not supplied.

    Returns
    -------
    AccountDataProvider
        ``SnapshotDataProvider`` when a readable snapshot is configured,
        otherwise ``StaticDataProvider``.
    """
    resolved_path = snapshot_path or os.environ.get(SNAPSHOT_ENV_VAR)
    if not resolved_path:
        return StaticDataProvider()

    try:
        return SnapshotDataProvider(resolved_path)
    except FileNotFoundError:
        logger.warning("Snapshot %s not found; using static data", resolved_path)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError, InvalidOperation):
        logger.warning("Snapshot %s is malformed; using static data", resolved_path, exc_info=True)
    return StaticDataProvider()
