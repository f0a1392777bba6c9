"""Environment-variable-based configuration for the plan runner."""

from __future__ import annotations

import os
from pathlib import Path

from projection_engine.models.calibration import CalibrationConfig, OptimizerSettings

HISTORY_WINDOW_DAYS: int = int(os.environ.get("PLAN_HISTORY_WINDOW_DAYS", "365"))
FEASIBILITY_MARGIN: float = float(os.environ.get("PLAN_FEASIBILITY_MARGIN", "0.95"))
FULL_MPC_BUDGET: int = int(os.environ.get("PLAN_FULL_MPC_BUDGET", "40000"))
DEGRADED_MPC_BUDGET: int = int(os.environ.get("PLAN_DEGRADED_MPC_BUDGET", "10000"))
STORE_DIR: Path = Path(os.environ.get("PLAN_STORE_DIR", "~/.plan_store")).expanduser()
LOG_LEVEL: str = os.environ.get("PLAN_LOG_LEVEL", "INFO").upper()


def calibration_from_env() -> CalibrationConfig:
    """Calibration with the window, margin and budgets set from the environment."""
    return CalibrationConfig(
        history_window_days=HISTORY_WINDOW_DAYS,
        feasibility_margin=FEASIBILITY_MARGIN,
        optimizer=OptimizerSettings(
            full_max_evaluations=FULL_MPC_BUDGET,
            degraded_max_evaluations=DEGRADED_MPC_BUDGET,
        ),
    )
