"""Preview/commit consistency guard.

A preview snapshot token is a SHA-256 digest over a canonical JSON rendering
of every input that must stay stable between preview and commit: the
normalized creation config, the goal calendar, the starting CTL override,
the calibration version and fingerprints of the consumed history window and
profile. Canonical JSON sorts keys, uses compact separators and renders
floats with six fixed decimals so the digest is platform independent.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Iterable

from projection_engine.exceptions import StalePreviewError
from projection_engine.math.calendar import effective_tss, parse_date
from projection_engine.models.calibration import CalibrationConfig
from projection_engine.models.context import ActivityRecord, ProfileSnapshot, TrainingContext
from projection_engine.models.creation_config import NormalizedCreationConfig
from projection_engine.models.enums import SNAPSHOT_VERSION
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.snapshot import PreviewSnapshot
from projection_engine.serialization.payload import to_payload


def _canonical(value: object) -> object:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return f"{value:.6f}"
    if isinstance(value, int):
        return value
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_canonical(v) for v in value]
    return value


def canonical_json(value: object) -> str:
    """Deterministic JSON for any engine value."""
    return json.dumps(
        _canonical(to_payload(value)),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )


def stable_digest(value: object) -> str:
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def fingerprint_history(records: Iterable[ActivityRecord], malformed_count: int = 0) -> str:
    """Order-independent fingerprint of a consumed history window."""
    rows = []
    for record in records:
        day = parse_date(record.date)
        rows.append(
            {
                "date": day.isoformat() if day else None,
                "category": record.activity_category,
                "duration_seconds": float(record.duration_seconds or 0.0),
                "tss": round(effective_tss(record), 3),
                "power_zones": [float(s) for s in record.power_zone_seconds],
                "hr_zones": [float(s) for s in record.hr_zone_seconds],
            }
        )
    rows.sort(key=lambda r: json.dumps(_canonical(r), sort_keys=True))
    return stable_digest({"rows": rows, "malformed": malformed_count})


def fingerprint_profile(profile: ProfileSnapshot | None) -> str:
    profile = profile or ProfileSnapshot()
    dob = parse_date(profile.dob)
    return stable_digest({"dob": dob, "gender": (profile.gender or "").strip().lower()})


def snapshot_payload(
    plan: MinimalPlan,
    config: NormalizedCreationConfig,
    context: TrainingContext,
    calibration: CalibrationConfig,
    starting_ctl_override: float | None = None,
) -> dict:
    """Every token-relevant input, in one dict."""
    return {
        "version": SNAPSHOT_VERSION,
        "calibration_version": calibration.version,
        "normalized_creation_config": config,
        "goal_calendar": {"plan_start_date": plan.plan_start_date, "goals": plan.goals},
        "history_fingerprint": context.history_fingerprint,
        "profile_fingerprint": context.profile_fingerprint,
        "starting_ctl_override": starting_ctl_override,
    }


def build_preview_snapshot(
    plan: MinimalPlan,
    config: NormalizedCreationConfig,
    context: TrainingContext,
    calibration: CalibrationConfig,
    starting_ctl_override: float | None = None,
) -> PreviewSnapshot:
    """Fingerprint the inputs of a preview as ``v<version>:<sha256>``."""
    digest = stable_digest(snapshot_payload(plan, config, context, calibration, starting_ctl_override))
    return PreviewSnapshot(version=SNAPSHOT_VERSION, token=f"v{SNAPSHOT_VERSION}:{digest}")


def verify_preview_snapshot(token: str, expected: PreviewSnapshot) -> None:
    """Reject a commit whose token does not match the recomputed snapshot.

    Raises:
        StalePreviewError: On version drift or any fingerprint mismatch.
    """
    if not token or not hmac.compare_digest(token.strip().encode("utf-8"), expected.token.encode("utf-8")):
        raise StalePreviewError()
