"""Enumerations and calibration constants for the projection engine.

Constants carry their source model or literature reference where one exists.
Engine-tunable values are collected into ``CalibrationConfig``
(see ``projection_engine.models.calibration``) rather than read globally.
"""

from enum import IntEnum, auto


class OptimizationProfile(IntEnum):
    """Named creation profiles that supply recovery and ramp defaults."""

    OUTCOME_FIRST = auto()
    BALANCED = auto()
    SUSTAINABLE = auto()


class HistoryAvailability(IntEnum):
    """How much recent training history backs the projection."""

    NONE = auto()
    SPARSE = auto()
    SUFFICIENT = auto()


class SignalMarker(IntEnum):
    """Three-level marker for consistency, effort and profile signals."""

    LOW = auto()
    MODERATE = auto()
    HIGH = auto()


class RampConfidence(IntEnum):
    """Confidence in a learned ramp tolerance."""

    LOW = auto()
    MEDIUM = auto()
    HIGH = auto()


class QualitySource(IntEnum):
    """Which zone data produced the training-quality distribution."""

    POWER = auto()
    HEART_RATE = auto()
    MIXED = auto()
    NEUTRAL_DEFAULT = auto()


class Gender(IntEnum):
    """Profile gender as used by the fatigue-constant adjustment."""

    MALE = auto()
    FEMALE = auto()
    UNSPECIFIED = auto()


class TargetKind(IntEnum):
    """Tagged variants of a goal target."""

    RACE_PERFORMANCE = auto()
    HR_THRESHOLD = auto()
    PACE_THRESHOLD = auto()
    POWER_THRESHOLD = auto()


class OptimizerPath(IntEnum):
    """Optimizer tiers: lower value is attempted first."""

    FULL_MPC = 1
    DEGRADED_BOUNDED_MPC = 2
    LEGACY_OPTIMIZER = 3
    CAP_ONLY_BASELINE = 4


class WeekPattern(IntEnum):
    """Load pattern applied to a microcycle."""

    BUILD = auto()
    DELOAD = auto()
    TAPER = auto()
    EVENT = auto()
    RECOVERY = auto()


class FeasibilityState(IntEnum):
    """Safety verdict for a projected plan, ordered by severity."""

    SAFE = auto()
    AGGRESSIVE = auto()
    UNSAFE = auto()


class FitnessLevel(IntEnum):
    """Inferred fitness level when no training history exists."""

    WEAK = auto()
    STRONG = auto()


class GoalTier(IntEnum):
    """Demand tier of a goal, from its targets."""

    LOW = auto()
    MEDIUM = auto()
    HIGH = auto()


class ConstraintStatus(IntEnum):
    """Outcome of a single scheduling rule."""

    SATISFIED = auto()
    VIOLATED = auto()
    UNKNOWN = auto()


WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# ---------------------------------------------------------------------------
# Load model
# ---------------------------------------------------------------------------
# Banister impulse-response time constants: Banister (1991), Coggan PMC model
DEFAULT_CTL_TIME_CONSTANT = 42
DEFAULT_ATL_TIME_CONSTANT = 7
MIN_TIME_CONSTANT = 1.0

# Fallback TSS when an activity has no stress score: 45 TSS per hour
FALLBACK_TSS_PER_HOUR = 45.0

# ---------------------------------------------------------------------------
# Personalization
# ---------------------------------------------------------------------------
# Age buckets: (upper_age_exclusive, fatigue_tc, fitness_tc, max_ctl_ceiling)
# Masters athletes recover more slowly: Fell & Williams (2008), J Aging Phys Act
AGE_BUCKETS = (
    (30, 7, 42, 150.0),
    (40, 8, 42, 140.0),
    (50, 9, 45, 125.0),
    (200, 10, 47, 110.0),
)
BASELINE_FATIGUE_TC = 7
BASELINE_FITNESS_TC = 42
BASELINE_MAX_CTL = 150.0
MAX_PLAUSIBLE_AGE = 120

# Longer fatigue decay for female athletes: Kenney et al., Physiology of Sport and Exercise
FEMALE_FATIGUE_MULTIPLIER = 1.1
MALE_FATIGUE_MULTIPLIER = 1.0

# Intensity load factor thresholds that extend the fatigue constant
INTENSITY_EXTENSION_LOW = 1.2
INTENSITY_EXTENSION_HIGH = 1.3

# Band weights for the intensity load factor (low, moderate, high)
INTENSITY_BAND_WEIGHTS = (1.0, 1.2, 1.5)

# Seiler (2010) polarized distribution used when no zone data exists
NEUTRAL_DISTRIBUTION = (70.0, 20.0, 10.0)
TRAINING_QUALITY_WINDOW_DAYS = 28

# Ramp learning
RAMP_LEARNING_WINDOW_DAYS = 365
RAMP_PERCENTILE = 75
RAMP_MIN_RATE = 30.0
RAMP_MAX_RATE = 70.0
RAMP_DEFAULT_RATE = 40.0
RAMP_MIN_WEEKS = 10
RAMP_MEDIUM_CONFIDENCE_DELTAS = 15
RAMP_HIGH_CONFIDENCE_DELTAS = 30

# ---------------------------------------------------------------------------
# Context derivation
# ---------------------------------------------------------------------------
MAX_HISTORY_WINDOW_DAYS = 365
RECENT_WINDOW_DAYS = 42
SPARSE_ACTIVITY_THRESHOLD = 10
CONSISTENCY_WEEKS = 6
CONSISTENCY_HIGH = 0.7
CONSISTENCY_MODERATE = 0.35
EFFORT_HIGH_COUNT = 6
EFFORT_MODERATE_COUNT = 2
BASELINE_WEEKS = 4

# ---------------------------------------------------------------------------
# Creation config
# ---------------------------------------------------------------------------
# (post_goal_recovery_days, max_weekly_tss_ramp_pct, max_ctl_ramp_per_week)
PROFILE_DEFAULTS = {
    OptimizationProfile.OUTCOME_FIRST: (3, 10.0, 5.0),
    OptimizationProfile.BALANCED: (5, 7.0, 3.0),
    OptimizationProfile.SUSTAINABLE: (7, 5.0, 2.0),
}
DEFAULT_PROFILE = OptimizationProfile.BALANCED
MAX_RECOVERY_DAYS = 28
MAX_TSS_RAMP_PCT = 20.0
MAX_CTL_RAMP_PER_WEEK = 8.0

# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------
# Week pattern multipliers: Pfitzinger & Douglas deload cadence, Mujika (2010) taper
DELOAD_EVERY_N_WEEKS = 4
DELOAD_MULTIPLIER = 0.9
TAPER_MULTIPLIER = 0.88
EVENT_MULTIPLIER = 0.8
RECOVERY_REDUCTION = 0.35

DEMAND_BAND = (0.85, 1.0, 1.15)
MIN_SEED_WEEKLY_TSS = 70.0
CTL_RAMP_BISECTION_ITERATIONS = 20

TIE_BREAK_CHAIN = (
    "objective_score",
    "ramp_variance",
    "goal_specificity",
    "week_index",
)

# ---------------------------------------------------------------------------
# No-history demand model
# ---------------------------------------------------------------------------
# Start CTL floors by (fitness_level, goal_tier)
NO_HISTORY_FLOOR = {
    (FitnessLevel.WEAK, GoalTier.LOW): 20.0,
    (FitnessLevel.WEAK, GoalTier.MEDIUM): 28.0,
    (FitnessLevel.WEAK, GoalTier.HIGH): 35.0,
    (FitnessLevel.STRONG, GoalTier.LOW): 30.0,
    (FitnessLevel.STRONG, GoalTier.MEDIUM): 40.0,
    (FitnessLevel.STRONG, GoalTier.HIGH): 50.0,
}
WEAK_INTENSITY_FACTOR = 0.68
STRONG_INTENSITY_FACTOR = 0.75
HIGH_TIER_DISTANCE_KM = 30.0
MEDIUM_TIER_DISTANCE_KM = 10.0

# Goal demand CTL: log-distance model with speed boost
DEMAND_DISTANCE_BASE = 28.0
DEMAND_DISTANCE_SCALE = 13.0
DEMAND_PACE_PIVOT_KPH = 9.5
DEMAND_PACE_SLOPE = 3.2
DEMAND_PACE_MAX_BOOST = 24.0
DEMAND_HR_THRESHOLD_CTL = 54.0
DEMAND_PACE_THRESHOLD_CTL = 56.0
DEMAND_POWER_THRESHOLD_CTL = 60.0
DEMAND_TIER_BIAS = 4.0
DEMAND_MIN_CTL = 35.0
DEMAND_MAX_CTL = 110.0
DEMAND_NO_TARGET_BASE = 48.0

# Evidence weighting by availability state
EVIDENCE_BASE = {
    HistoryAvailability.NONE: 0.2,
    HistoryAvailability.SPARSE: 0.45,
    HistoryAvailability.SUFFICIENT: 0.8,
}
EVIDENCE_STALE_BASE = 0.35

# ---------------------------------------------------------------------------
# Feasibility and conflicts
# ---------------------------------------------------------------------------
DEFAULT_FEASIBILITY_MARGIN = 0.95
READINESS_WEIGHTS = {
    "load_state": 0.35,
    "intensity_balance": 0.25,
    "specificity": 0.25,
    "execution_confidence": 0.15,
}
READINESS_HIGH = 75.0
READINESS_MEDIUM = 55.0
MIN_PREP_DAYS_AFTER_RECOVERY = 21

# ---------------------------------------------------------------------------
# Preview snapshot
# ---------------------------------------------------------------------------
SNAPSHOT_VERSION = 1
