"""CLI entry point for matching, auto-apply and the scheduled jobs."""

import argparse
import json
import logging
import sys
from datetime import datetime, timedelta, timezone

from autoapply.apply.channels import UrlPatternClassifier
from autoapply.apply.policy import Candidate, run_auto_apply
from autoapply.config import AppConfig, load_config, validate_config
from autoapply.errors import AutoApplyError
from autoapply.matching.matcher import compute_matches, load_weights
from autoapply.models import init_db
from autoapply.notifications.email_sender import EmailNotifier, send_email
from autoapply.notifications.templates import render_test_email
from autoapply.pipeline import run_daily_matches
from autoapply.scheduler import process_due_runs
from autoapply.storage.repository import JobRepository
from autoapply.utils.logging_config import setup_logging

logger = logging.getLogger("autoapply")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="AutoApply - job match scoring and auto-apply",
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--user",
        help="User id for --match, --auto-apply and --stats",
    )
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument(
        "--match", nargs="+", metavar="JOB_ID",
        help="Score the given job postings for --user and print the ranked matches",
    )
    actions.add_argument(
        "--auto-apply", metavar="MATCHES_JSON",
        help="Run auto-apply for --user from a JSON file of matches ('-' for stdin)",
    )
    actions.add_argument(
        "--daily-match", action="store_true",
        help="Send the daily match digest to every user with preferences",
    )
    actions.add_argument(
        "--process-scheduled", action="store_true",
        help="Execute scheduled auto-apply runs that are due",
    )
    actions.add_argument(
        "--stats", action="store_true",
        help="Print the last 30 days of analytics for --user",
    )
    actions.add_argument(
        "--test-email", metavar="RECIPIENT",
        help="Send a test email and exit",
    )
    return parser.parse_args(argv)


def _read_matches(source: str) -> list[Candidate]:
    if source == "-":
        raw = json.load(sys.stdin)
    else:
        with open(source, "r", encoding="utf-8") as f:
            raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("matches", [])
    return [Candidate.from_dict(item) for item in raw]


def print_stats(repository: JobRepository, user_id: str):
    """Print analytics for the last 30 days."""
    rows = repository.get_analytics(user_id, datetime.now(timezone.utc).date() - timedelta(days=29))
    print(f"\n=== AutoApply Statistics for {user_id} ===")
    if not rows:
        print("No activity in the last 30 days")
    for row in rows:
        print(
            f"{row.date.isoformat()}  fetched: {row.jobs_fetched or 0:>4}  "
            f"auto-applied: {row.jobs_auto_applied or 0:>3}  "
            f"manual: {row.jobs_manual_required or 0:>3}"
        )
    pending = repository.pending_runs(user_id)
    if pending:
        print("\nPending scheduled runs:")
        for run in pending:
            print(f"  {run.mode} at {run.fire_at}")
    print()


def run_command(args: argparse.Namespace, config: AppConfig) -> int:
    needs_user = args.match or args.auto_apply or args.stats
    if needs_user and not args.user:
        print("Error: --user is required for this command", file=sys.stderr)
        return 2

    if args.test_email:
        logger.info("Sending test email...")
        subject, html = render_test_email()
        try:
            send_email(config.email, args.test_email, subject, html)
        except Exception as e:
            logger.error("Test email failed: %s: %s", type(e).__name__, e)
            print("Failed to send test email. Check logs for details.", file=sys.stderr)
            return 1
        print("Test email sent successfully!")
        return 0

    if args.daily_match:
        results = run_daily_matches(config)
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return 0

    with JobRepository() as repository:
        if args.stats:
            print_stats(repository, args.user)
            return 0

        if args.match:
            report = compute_matches(repository, args.user, args.match, load_weights(config.matching.weights))
            print(json.dumps(report.to_dict(), indent=2))
            return 0

        notifier = EmailNotifier(config.email, repository.get_user_email)
        classifier = UrlPatternClassifier(config.auto_apply.internal_url_patterns)

        if args.auto_apply:
            outcome = run_auto_apply(repository, args.user, _read_matches(args.auto_apply), classifier, notifier)
            print(json.dumps(outcome.to_dict(), indent=2))
            return 0

        if args.process_scheduled:
            processed = process_due_runs(repository, config, classifier, notifier)
            print(f"Processed {len(processed.run_ids)} scheduled runs ({processed.failed} failed)")
            return 1 if processed.failed else 0

    return 0


def main(argv=None):
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_dir)

    for w in validate_config(config):
        logger.warning("Config: %s", w)

    init_db(config.database_url)

    try:
        sys.exit(run_command(args, config))
    except AutoApplyError as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
