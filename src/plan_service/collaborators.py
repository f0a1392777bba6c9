"""Collaborator interfaces the plan service reads from and writes to.

Each interface has an in-memory implementation for tests and embedding, and
the plan store has a JSON-file implementation used by the command line.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from projection_engine.math.calendar import parse_date
from projection_engine.models.context import ActivityRecord, EffortBest, ProfileSnapshot

logger = logging.getLogger(__name__)

# Armed preview tokens kept per store
DEFAULT_MAX_ISSUED_TOKENS = 1024


@dataclass(frozen=True)
class ScheduledActivity:
    """An activity plan placed on a date within a training plan."""

    activity_plan_id: str
    scheduled_date: date


@dataclass(frozen=True)
class ActivityPlan:
    """A reusable session template with its estimated cost."""

    id: str
    name: str = ""
    estimated_tss: float = 0.0
    estimated_duration_minutes: float = 0.0


# ----------------------------------------------------------------------
# Interfaces
# ----------------------------------------------------------------------


class HistoryReader(ABC):
    @abstractmethod
    def read_history(self, start: date, end: date) -> list[ActivityRecord]:
        """Activities dated within ``[start, end]``."""
        ...


class EffortBestsReader(ABC):
    @abstractmethod
    def read_efforts(self, start: date, end: date) -> list[EffortBest]:
        ...


class ProfileReader(ABC):
    @abstractmethod
    def read_profile(self) -> Optional[ProfileSnapshot]:
        ...


class PlanWriter(ABC):
    @abstractmethod
    def create_plan(self, document: dict) -> str:
        """Persist a plan document and return its id."""
        ...


class PlanStore(PlanWriter):
    """Plan persistence with scheduling lookups and token claims."""

    @abstractmethod
    def get_plan(self, plan_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def list_scheduled_activities(self, plan_id: str) -> list[ScheduledActivity]:
        ...

    def issue_snapshot_token(self, token: str) -> None:
        """Arm a preview token for one commit.

        Every preview re-arms its token, so the same inputs previewed again
        may be committed again. Stores that do not track tokens ignore this.
        """

    def claim_snapshot_token(self, token: str) -> bool:
        """Consume an armed preview token.

        Returns False when the token was never issued or was already
        claimed since its last preview. Stores that do not track tokens
        accept every claim.
        """
        return True

    def release_snapshot_token(self, token: str) -> None:
        """Re-arm a claimed token after the plan write failed."""


class ActivityPlanReader(ABC):
    @abstractmethod
    def get_activity_plan(self, activity_plan_id: str) -> Optional[ActivityPlan]:
        ...


# ----------------------------------------------------------------------
# In-memory implementations
# ----------------------------------------------------------------------


class StaticHistoryReader(HistoryReader):
    """Serves a fixed list of activities, filtered to the requested window.

    Rows with unparseable dates are passed through so that derivation can
    count them as malformed.
    """

    def __init__(self, records: Iterable[ActivityRecord] = ()) -> None:
        self._records = tuple(records)

    def read_history(self, start, end):
        rows = []
        for record in self._records:
            day = parse_date(record.date)
            if day is None or start <= day <= end:
                rows.append(record)
        return rows


class StaticEffortBestsReader(EffortBestsReader):
    def __init__(self, efforts: Iterable[EffortBest] = ()) -> None:
        self._efforts = tuple(efforts)

    def read_efforts(self, start, end):
        rows = []
        for effort in self._efforts:
            day = parse_date(effort.date)
            if day is not None and start <= day <= end:
                rows.append(effort)
        return rows


class StaticProfileReader(ProfileReader):
    def __init__(self, profile: ProfileSnapshot | None = None) -> None:
        self._profile = profile

    def read_profile(self):
        return self._profile


class InMemoryPlanStore(PlanStore):
    """Thread-safe plan store kept in process memory.

    Plan ids are sequential (``plan-1``, ``plan-2``, ...). At most
    ``max_issued_tokens`` armed preview tokens are kept; the oldest is
    dropped first, and a dropped token needs a fresh preview.
    """

    def __init__(self, max_issued_tokens: int = DEFAULT_MAX_ISSUED_TOKENS) -> None:
        self._lock = threading.Lock()
        self._plans: dict[str, dict] = {}
        self._scheduled: dict[str, list[ScheduledActivity]] = {}
        self._issued: OrderedDict[str, None] = OrderedDict()
        self._max_issued = max_issued_tokens

    def create_plan(self, document):
        with self._lock:
            plan_id = f"plan-{len(self._plans) + 1}"
            self._plans[plan_id] = dict(document, id=plan_id)
            self._scheduled.setdefault(plan_id, [])
        return plan_id

    def get_plan(self, plan_id):
        with self._lock:
            return self._plans.get(plan_id)

    def schedule(self, plan_id: str, activity_plan_id: str, scheduled_date: date) -> None:
        with self._lock:
            self._scheduled.setdefault(plan_id, []).append(ScheduledActivity(activity_plan_id, scheduled_date))

    def list_scheduled_activities(self, plan_id):
        with self._lock:
            return list(self._scheduled.get(plan_id, ()))

    def issue_snapshot_token(self, token):
        with self._lock:
            self._issued.pop(token, None)
            self._issued[token] = None
            while len(self._issued) > self._max_issued:
                self._issued.popitem(last=False)

    def claim_snapshot_token(self, token):
        with self._lock:
            if token not in self._issued:
                return False
            del self._issued[token]
            return True

    def release_snapshot_token(self, token):
        self.issue_snapshot_token(token)


class InMemoryActivityPlanReader(ActivityPlanReader):
    def __init__(self, plans: Iterable[ActivityPlan] = ()) -> None:
        self._plans = {p.id: p for p in plans}

    def get_activity_plan(self, activity_plan_id):
        return self._plans.get(activity_plan_id)


class JsonFilePlanStore(PlanStore):
    """Plan store backed by one JSON file per plan in a directory.

    Layout::

        <directory>/plans/<id>.json
        <directory>/schedules/<id>.json
        <directory>/issued_tokens.json

    Token updates are serialized by a thread lock only. Two processes
    sharing a directory may both claim the same token.
    """

    def __init__(self, directory: Path | str, max_issued_tokens: int = DEFAULT_MAX_ISSUED_TOKENS) -> None:
        self._dir = Path(directory).expanduser()
        self._lock = threading.Lock()
        self._max_issued = max_issued_tokens

    def _plan_path(self, plan_id: str) -> Path:
        return self._dir / "plans" / f"{plan_id}.json"

    def _schedule_path(self, plan_id: str) -> Path:
        return self._dir / "schedules" / f"{plan_id}.json"

    def _tokens_path(self) -> Path:
        return self._dir / "issued_tokens.json"

    def _read_tokens(self) -> list[str]:
        path = self._tokens_path()
        if not path.exists():
            return []
        with open(path) as f:
            return json.load(f)

    def _write_tokens(self, tokens: list[str]) -> None:
        path = self._tokens_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(tokens[-self._max_issued :], f)

    def create_plan(self, document):
        plan_id = uuid.uuid4().hex
        path = self._plan_path(plan_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(dict(document, id=plan_id), f, indent=2)
        logger.info("Wrote plan %s to %s", plan_id, path)
        return plan_id

    def get_plan(self, plan_id):
        path = self._plan_path(plan_id)
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)

    def list_scheduled_activities(self, plan_id):
        path = self._schedule_path(plan_id)
        if not path.exists():
            return []
        with open(path) as f:
            rows = json.load(f)
        scheduled = []
        for row in rows:
            day = parse_date(row.get("scheduled_date"))
            if day is None:
                logger.warning("Skipping scheduled activity with bad date in %s: %s", path, row)
                continue
            scheduled.append(ScheduledActivity(str(row["activity_plan_id"]), day))
        return scheduled

    def issue_snapshot_token(self, token):
        with self._lock:
            tokens = [t for t in self._read_tokens() if t != token]
            tokens.append(token)
            self._write_tokens(tokens)

    def claim_snapshot_token(self, token):
        with self._lock:
            tokens = self._read_tokens()
            if token not in tokens:
                return False
            tokens.remove(token)
            self._write_tokens(tokens)
            return True

    def release_snapshot_token(self, token):
        self.issue_snapshot_token(token)
