"""
CivicReport CLI entrypoint.

Intended for local use and debugging without a front end. It drives the same
stores the API uses, against the storage dir from settings.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from civicreport.config.settings import get_settings
from civicreport.core.geo import GeoPoint
from civicreport.core.logging import configure_logging
from civicreport.core.storage import build_blob_store
from civicreport.domain.errors import CivicReportError
from civicreport.domain.models import CATEGORIES, MILESTONES, STATUSES, MapRegion, ReportDraft, UserProfile
from civicreport.proximity.feed import CandidateFeed, ReportCandidateFeed, SimulatedCandidateFeed
from civicreport.proximity.index import ProximityIndex
from civicreport.services.formatting import format_date, relative_time
from civicreport.services.location import StaticLocationProvider, build_geocoder, resolve_current_location
from civicreport.services.media import collect_media
from civicreport.store.profile import ProfileStore
from civicreport.store.reports import ReportStore


def _open_stores() -> tuple[ReportStore, ProfileStore]:
    settings = get_settings()
    blobs = build_blob_store(settings)
    profile = ProfileStore(blobs)
    profile.initialize()
    reports = ReportStore(blobs, profile=profile)
    reports.initialize()
    return reports, profile


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _cmd_report_add(args: argparse.Namespace) -> int:
    settings = get_settings()
    reports, _ = _open_stores()

    point = None
    if args.lat is not None and args.lon is not None:
        point = GeoPoint(lat=float(args.lat), lon=float(args.lon))
    location = resolve_current_location(StaticLocationProvider(point), build_geocoder(settings))
    if location is not None and args.address:
        location = location.model_copy(update={"address": args.address})

    media = collect_media(
        record_voice_note=(lambda: args.voice_note) if args.voice_note else None,
        existing_images=args.image,
    )
    draft = ReportDraft(title=args.title, category=args.category, location=location, **media)
    report_id = reports.add_report(draft)
    print(report_id)
    return 0


def _cmd_report_list(args: argparse.Namespace) -> int:
    reports, _ = _open_stores()
    items = reports.filtered_view(args.status, newest_first=bool(args.newest_first))
    if args.json:
        _print_json([r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in items])
        return 0
    for r in items:
        print(f"{r.id}  [{r.status}] {r.title} ({r.category})  {format_date(r.created_at)}")
        if r.location.address:
            print(f"    {r.location.address}")
        print(f"    progress: {', '.join(r.resolution_progress.completed())}")
    return 0


def _cmd_report_counts(args: argparse.Namespace) -> int:
    reports, _ = _open_stores()
    counts = reports.counts_by_status()
    if args.json:
        _print_json(counts.model_dump(by_alias=True))
        return 0
    print(
        f"total={counts.total} pending={counts.pending} "
        f"in-progress={counts.in_progress} resolved={counts.resolved}"
    )
    return 0


def _cmd_report_status(args: argparse.Namespace) -> int:
    reports, _ = _open_stores()
    updated = reports.update_status(args.id, args.status)
    print(f"{updated.id}: {updated.status}")
    return 0


def _cmd_report_milestone(args: argparse.Namespace) -> int:
    reports, _ = _open_stores()
    updated = reports.mark_milestone(args.id, args.milestone)
    print(f"{updated.id}: {', '.join(updated.resolution_progress.completed())}")
    return 0


def _cmd_report_delete(args: argparse.Namespace) -> int:
    reports, _ = _open_stores()
    reports.delete_report(args.id)
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    ref = settings.nearby.default_reference
    reference = GeoPoint(
        lat=float(args.lat) if args.lat is not None else ref.latitude,
        lon=float(args.lon) if args.lon is not None else ref.longitude,
    )
    region = MapRegion(latitude=reference.lat, longitude=reference.lon, latitude_delta=1.0, longitude_delta=1.0)

    if args.source == "reports":
        reports, _ = _open_stores()
        feed: CandidateFeed = ReportCandidateFeed(reports)
    else:
        feed = SimulatedCandidateFeed()

    index = ProximityIndex(focus_delta=settings.nearby.focus_delta)
    index.refresh(reference, feed.fetch_candidate_issues(region))
    if args.select:
        index.select(args.select)
    issues = index.filtered(category=args.category, max_distance_km=args.max_distance_km)

    if args.json:
        focus = index.focus_region()
        _print_json(
            {
                "issues": [i.model_dump(mode="json", by_alias=True) for i in issues],
                "selectedId": index.selected_id,
                "focus": focus.model_dump(by_alias=True) if focus else None,
            }
        )
        return 0
    for i in issues:
        mark = "*" if i.id == index.selected_id else " "
        print(f"{mark} {i.distance_km:>5.1f} km  {i.category}: {i.description}  ({i.author}, {relative_time(i.reported_at)})")
    return 0


def _cmd_profile_login(args: argparse.Namespace) -> int:
    _, profile = _open_stores()
    profile.login(UserProfile(name=args.name, phone=args.phone, email=args.email))
    return 0


def _cmd_profile_show(_: argparse.Namespace) -> int:
    _, profile = _open_stores()
    if profile.user is None:
        print("Not logged in")
        return 1
    _print_json(profile.user.model_dump(by_alias=True, exclude_none=True))
    return 0


def _cmd_profile_logout(_: argparse.Namespace) -> int:
    _, profile = _open_stores()
    profile.logout()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CivicReport CLI."""
    parser = argparse.ArgumentParser(prog="civicreport")
    sub = parser.add_subparsers(dest="command", required=True)

    rep = sub.add_parser("report", help="Create, list and update your reports.")
    rsub = rep.add_subparsers(dest="report_command", required=True)

    add = rsub.add_parser("add", help="Submit a new report.")
    add.add_argument("--title", required=True)
    add.add_argument("--category", choices=CATEGORIES, default="Others")
    add.add_argument("--lat", type=float, default=None)
    add.add_argument("--lon", type=float, default=None)
    add.add_argument("--address", type=str, default=None, help="Override the geocoded address.")
    add.add_argument("--image", action="append", default=[], help="Repeatable media reference.")
    add.add_argument("--voice-note", dest="voice_note", type=str, default=None)
    add.set_defaults(func=_cmd_report_add)

    ls = rsub.add_parser("list", help="List reports, optionally filtered by status.")
    ls.add_argument("--status", choices=["all", *STATUSES], default="all")
    ls.add_argument("--newest-first", action="store_true")
    ls.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ls.set_defaults(func=_cmd_report_list)

    counts = rsub.add_parser("counts", help="Report counts per status.")
    counts.add_argument("--json", action="store_true")
    counts.set_defaults(func=_cmd_report_counts)

    st = rsub.add_parser("status", help="Set a report's status.")
    st.add_argument("id")
    st.add_argument("status", choices=STATUSES)
    st.set_defaults(func=_cmd_report_status)

    ms = rsub.add_parser("milestone", help="Advance resolution progress up to a milestone.")
    ms.add_argument("id")
    ms.add_argument("milestone", choices=MILESTONES)
    ms.set_defaults(func=_cmd_report_milestone)

    rm = rsub.add_parser("delete", help="Delete a report (no-op if absent).")
    rm.add_argument("id")
    rm.set_defaults(func=_cmd_report_delete)

    near = sub.add_parser("nearby", help="Rank issues around a reference point.")
    near.add_argument("--lat", type=float, default=None)
    near.add_argument("--lon", type=float, default=None)
    near.add_argument("--category", type=str, default=None)
    near.add_argument("--max-distance-km", dest="max_distance_km", type=float, default=None)
    near.add_argument("--select", type=str, default=None, help="Issue id to highlight.")
    near.add_argument(
        "--source",
        choices=["simulated", "reports"],
        default="simulated",
        help="Rank demo issues or your own stored reports.",
    )
    near.add_argument("--json", action="store_true")
    near.set_defaults(func=_cmd_nearby)

    prof = sub.add_parser("profile", help="Local profile.")
    psub = prof.add_subparsers(dest="profile_command", required=True)
    login = psub.add_parser("login")
    login.add_argument("--name", required=True)
    login.add_argument("--phone", required=True)
    login.add_argument("--email", default=None)
    login.set_defaults(func=_cmd_profile_login)
    psub.add_parser("show").set_defaults(func=_cmd_profile_show)
    psub.add_parser("logout").set_defaults(func=_cmd_profile_logout)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m civicreport.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except CivicReportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except PydanticValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"]) or "input"
            print(f"error: {field}: {err['msg']}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
