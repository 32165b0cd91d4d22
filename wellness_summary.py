"""wellness_summary.py

Print a wellness summary for the health and screen-time exports, save the
computed metrics as JSON/CSV, and optionally ask the LLM one question
about the data.

Usage:
    python wellness_summary.py
    python wellness_summary.py --health data/health_daily.json --screen-time data/screentime.json
    python wellness_summary.py --ask "Which app do I use the most?"
    python wellness_summary.py --ask "Any pattern here?" --chart steps
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from analytics import (
    compute_metrics,
    load_datasets,
    print_summary_report,
    save_metrics_files,
)
from llm import (
    SETUP_HINT,
    AskError,
    MissingApiKeyError,
    ask_chart_question,
    ask_question,
    create_chat_client,
)

CHART_TITLES = {
    "steps": "Steps Over Time",
    "steps-vs-exercise": "Steps vs Exercise",
    "sleep-vs-exercise": "Sleep vs Exercise",
    "screen-time": "Daily Screen Time",
    "top-apps": "Top Apps",
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise health and screen-time data and optionally ask a question about it",
    )
    parser.add_argument('--health', default='data/health_daily.json',
                        help='Path to the daily health JSON file (default: data/health_daily.json)')
    parser.add_argument('--screen-time', default='data/screentime.json',
                        help='Path to the screen time JSON file (default: data/screentime.json)')
    parser.add_argument('--output-dir', '-o', default='wellness_analytics',
                        help='Directory for metrics.json and CSV files (default: wellness_analytics)')
    parser.add_argument('--no-save', action='store_true',
                        help='Do not write metrics files')
    parser.add_argument('--ask', metavar='QUESTION',
                        help='Ask the LLM a question about the data (needs OPENAI_API_KEY)')
    parser.add_argument('--chart', choices=sorted(CHART_TITLES),
                        help='Scope --ask to one dashboard chart')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show debug logging')
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits with status 1 when a question cannot be answered."""
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    health, screen_time = load_datasets(args.health, args.screen_time)
    metrics = compute_metrics(health, screen_time)
    print_summary_report(metrics)

    if not args.no_save and health:
        save_metrics_files(metrics, args.output_dir)
        print(f"\nMetrics saved to the '{args.output_dir}' directory.")

    if not args.ask:
        return

    if not health:
        print("\nNo data available to answer questions.", file=sys.stderr)
        sys.exit(1)

    try:
        client = create_chat_client(os.environ.get("OPENAI_API_KEY"))
        if args.chart:
            answer = ask_chart_question(
                client, args.ask, CHART_TITLES[args.chart], args.chart,
                metrics, health, screen_time,
            )
        else:
            answer = ask_question(client, args.ask, metrics, health, screen_time)
    except MissingApiKeyError as e:
        print(f"\n{e}\n{SETUP_HINT}", file=sys.stderr)
        sys.exit(1)
    except AskError as e:
        print(f"\n{e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nQ: {args.ask}\nA: {answer}")


if __name__ == '__main__':
    main()
