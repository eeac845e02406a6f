"""Solvency and liquidation-threshold engine for margin accounts."""

from margin_risk.position.solvency import evaluate_solvency
from margin_risk.stress.thresholds import compute_liquidation_thresholds

__all__ = ["compute_liquidation_thresholds", "evaluate_solvency"]
