from projection_engine.conflict_detection.checks import (
    ConflictCheck,
    ConstraintBoundsCheck,
    RampCapCheck,
    RecoveryWindowCheck,
    default_checks,
)
from projection_engine.conflict_detection.detector import ConflictDetector

__all__ = [
    "ConflictCheck",
    "ConflictDetector",
    "ConstraintBoundsCheck",
    "RampCapCheck",
    "RecoveryWindowCheck",
    "default_checks",
]
