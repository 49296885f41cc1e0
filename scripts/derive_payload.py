from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from apps.worker.pipeline import (
    build_context_events,
    build_current_alerts,
    build_dashboard_payload,
    build_lab_workbench_payload,
    build_mainboard_payload,
    build_recent_issues,
)
from apps.worker.steps.step00_load_content import CONTENT_DIR, ContentCache, ContentLoadError, load_content_dir
from packages.shared.models import DeriveConfig

logger = logging.getLogger("derive_payload")

PAYLOAD_KINDS = ("mainboard", "lab", "dashboard", "recent-issues", "alerts", "context")
RECENT_ISSUE_LIMIT = 5


def _dump(value) -> object:
    if isinstance(value, list):
        return [item.model_dump(mode="json", by_alias=True) for item in value]
    return value.model_dump(mode="json", by_alias=True)


def derive(kind: str, args: argparse.Namespace, cache: ContentCache) -> object:
    content = cache.get()
    config = DeriveConfig(burden_reference_days=args.reference_days)

    if kind == "mainboard":
        return _dump(build_mainboard_payload(content, args.range, args.anchor, config))
    if kind == "lab":
        return _dump(build_lab_workbench_payload(content, args.range or "all", args.anchor, config))
    if kind == "dashboard":
        return _dump(build_dashboard_payload(content, args.range, args.anchor, config))
    if kind == "recent-issues":
        limit = args.limit if args.limit is not None else RECENT_ISSUE_LIMIT
        return _dump(build_recent_issues(content, days=args.days, limit=limit, anchor=args.anchor))
    if kind == "alerts":
        return {"alerts": _dump(build_current_alerts(content, limit=args.limit))}
    return {"events": _dump(build_context_events(content, args.from_date, args.to_date))}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Derive a caregiver payload from a content directory.")
    parser.add_argument("kinds", nargs="+", choices=PAYLOAD_KINDS, help="Payload(s) to derive from one content load")
    parser.add_argument("--content-dir", type=Path, default=CONTENT_DIR, help="Directory with the JSON content files")
    parser.add_argument("--range", default=None, help="7d, 30d or 90d (lab also accepts 'all')")
    parser.add_argument("--anchor", default=None, help="Window end date YYYY-MM-DD (default: today UTC)")
    parser.add_argument("--days", type=int, default=7, help="Recent-issues window length")
    parser.add_argument("--limit", type=int, default=None, help="Result limit for recent-issues/alerts")
    parser.add_argument("--from", dest="from_date", default=None, help="Context events start date")
    parser.add_argument("--to", dest="to_date", default=None, help="Context events end date")
    parser.add_argument("--reference-days", type=int, default=90, help="Burden reference window")
    parser.add_argument("--out", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    cache = ContentCache(lambda: load_content_dir(args.content_dir))
    try:
        results = {kind: derive(kind, args, cache) for kind in args.kinds}
    except ContentLoadError as exc:
        logger.error(f"Content load failed: {exc}")
        return 2

    result = results[args.kinds[0]] if len(results) == 1 else results
    text = json.dumps(result, indent=2, ensure_ascii=False)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text, encoding="utf-8")
        logger.info(f"Wrote {', '.join(results)} payload to {args.out}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
