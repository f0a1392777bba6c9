"""Plan runner: preview, create and suggest training plans from JSON files.

Usage:
    python -m runner.cli preview --plan plan.json --history history.json
    python -m runner.cli create --plan plan.json --config config.json --token v1:...
    python -m runner.cli suggest --history history.json --profile profile.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from plan_service import (
    JsonFilePlanStore,
    StaticEffortBestsReader,
    StaticHistoryReader,
    StaticProfileReader,
    TrainingPlanService,
)
from projection_engine.exceptions import ProjectionEngineError
from projection_engine.serialization import (
    parse_activity_record,
    parse_effort_best,
    parse_profile,
    to_json_string,
)

from runner.config import LOG_LEVEL, STORE_DIR, calibration_from_env

logger = logging.getLogger(__name__)


def _load_json(path: Path | None, default=None):
    if path is None:
        return default
    with open(path) as f:
        return json.load(f)


def _build_service(args: argparse.Namespace) -> TrainingPlanService:
    history = [parse_activity_record(r) for r in _load_json(args.history, [])]
    efforts = [parse_effort_best(e) for e in _load_json(args.efforts, [])]
    profile = parse_profile(_load_json(args.profile, {}))
    return TrainingPlanService(
        history_reader=StaticHistoryReader(history),
        profile_reader=StaticProfileReader(profile),
        plan_store=JsonFilePlanStore(args.store_dir),
        effort_reader=StaticEffortBestsReader(efforts),
        calibration=calibration_from_env(),
    )


def _run(args: argparse.Namespace) -> object:
    service = _build_service(args)
    if args.command == "suggest":
        return service.get_creation_suggestions(as_of=args.as_of, existing_values=_load_json(args.existing))

    plan = _load_json(args.plan)
    config = _load_json(args.config)
    if args.command == "preview":
        return service.preview_creation_config(plan, config, args.starting_ctl, as_of=args.as_of)

    policy = {"allow_blocking_conflicts": True, "reason": args.override_reason} if args.allow_blocking else None
    return service.create_from_creation_config(
        plan,
        config,
        preview_snapshot_token=args.token,
        starting_ctl_override=args.starting_ctl,
        override_policy=policy,
        as_of=args.as_of,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Training plan projection runner")
    parser.add_argument("--history", type=Path, help="JSON list of activity records")
    parser.add_argument("--profile", type=Path, help="JSON profile {dob, gender}")
    parser.add_argument("--efforts", type=Path, help="JSON list of effort bests")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD)")
    parser.add_argument("--store-dir", type=Path, default=STORE_DIR, help="Plan store directory")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("preview", "create"):
        cmd = sub.add_parser(name, help=f"{name.capitalize()} a plan from a minimal plan file")
        cmd.add_argument("--plan", type=Path, required=True, help="JSON minimal plan")
        cmd.add_argument("--config", type=Path, help="JSON creation config")
        cmd.add_argument("--starting-ctl", type=float, default=None, help="Starting CTL override")
        if name == "create":
            cmd.add_argument("--token", default=None, help="Preview snapshot token")
            cmd.add_argument("--allow-blocking", action="store_true", help="Commit despite blocking conflicts")
            cmd.add_argument("--override-reason", default=None, help="Why blocking conflicts are accepted")

    suggest = sub.add_parser("suggest", help="Suggest creation settings")
    suggest.add_argument("--existing", type=Path, help="JSON of values already chosen")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        result = _run(args)
    except ProjectionEngineError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 2
    print(to_json_string(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
