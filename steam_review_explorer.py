from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from steam_api_client import SteamReviewClient, coerce_review_options
from steam_errors import SteamExplorerError
from steam_http import RequestStats
from steam_proxy_gateway import ContentGateway
from steam_reviewer_aggregation import aggregate_reviewer_data, rank_shared_titles
from steam_settings import DEFAULT_MAX_PAGES_PER_REVIEWER, REVIEWER_WORKERS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Fetch Steam reviews for one app, enrich them with player profiles and optionally "
            "analyze what else the positive reviewers recommend."
        )
    )
    parser.add_argument("--appid", required=True, help="Steam app id, for example 620")
    parser.add_argument("--pages", type=int, default=1, help="Review pages to walk via cursor (default: 1)")
    parser.add_argument("--fetch-all", action="store_true", help="Walk the cursor until --limit reviews")
    parser.add_argument("--limit", type=int, default=500, help="Review cap for --fetch-all (default: 500)")
    parser.add_argument("--filter", default="recent", help="Review filter: recent, updated, all")
    parser.add_argument("--language", default="all", help="Review language (default: all)")
    parser.add_argument("--day-range", type=int, default=0, help="Day range for filter=all")
    parser.add_argument("--review-type", choices=["all", "positive", "negative"], default="all")
    parser.add_argument("--purchase-type", choices=["all", "steam", "non_steam_purchase"], default="all")
    parser.add_argument("--num-per-page", type=int, default=20, help="Reviews per page, 1..100 (default: 20)")
    parser.add_argument(
        "--analyze-reviewers",
        action="store_true",
        help="Visit every positive reviewer's profile feed and collect their other recommendations",
    )
    parser.add_argument(
        "--max-pages-per-reviewer",
        type=int,
        default=DEFAULT_MAX_PAGES_PER_REVIEWER,
        help=f"Feed pages to read per reviewer (default: {DEFAULT_MAX_PAGES_PER_REVIEWER})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=REVIEWER_WORKERS,
        help=f"Reviewers processed concurrently (default: {REVIEWER_WORKERS})",
    )
    parser.add_argument(
        "--include-target-app",
        action="store_true",
        help="Keep reviewers' own reviews of --appid in the analysis",
    )
    parser.add_argument("--min-shared", type=int, default=2, help="Minimum reviewers for the shared-titles list")
    parser.add_argument("--output", default=None, help="Write the JSON report to this file instead of stdout")
    parser.add_argument("--quiet", action="store_true", help="Reduce console output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    def log(message: str) -> None:
        if not args.quiet:
            print(message, file=sys.stderr, flush=True)

    stats = RequestStats()
    client = SteamReviewClient(stats=stats)
    gateway = ContentGateway(stats=stats)

    try:
        options = coerce_review_options(
            {
                "filter": args.filter,
                "language": args.language,
                "day_range": args.day_range,
                "review_type": args.review_type,
                "purchase_type": args.purchase_type,
                "num_per_page": args.num_per_page,
            }
        )
        log(f"Fetching reviews: appid={args.appid} pages={args.pages} fetch_all={args.fetch_all}")
        page = client.collect_reviews(
            args.appid,
            options,
            pages=args.pages,
            fetch_all=args.fetch_all,
            limit=args.limit,
        )
        summary = page.query_summary
        log(
            f"Reviews fetched: {len(page.reviews)} "
            f"(score={summary.review_score_desc or '-'} positive={summary.positive_percent}%)"
        )

        report = page.to_dict()
        report["query_summary"]["positive_percent"] = summary.positive_percent

        if args.analyze_reviewers:

            def _on_progress(processed: int, total: int) -> None:
                log(f"[reviewers] {processed}/{total} ({round(processed / total * 100)}%)")

            analysis = aggregate_reviewer_data(
                page.reviews,
                max_pages_per_reviewer=args.max_pages_per_reviewer,
                on_progress=_on_progress,
                exclude_app_id=None if args.include_target_app else args.appid,
                gateway=gateway,
                max_workers=args.workers,
            )
            failed = analysis.failed()
            log(f"Analyzed {len(analysis.reviewers)} reviewers, failed={len(failed)}")
            report["analysis"] = analysis.to_dict()
            report["shared_titles"] = rank_shared_titles(analysis, min_reviewers=max(1, args.min_shared))
    except SteamExplorerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    report["request_stats"] = stats.snapshot()
    payload = json.dumps(report, ensure_ascii=False, indent=2)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload, encoding="utf-8")
        log(f"Report written to: {out}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
