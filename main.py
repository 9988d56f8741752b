# main.py

"""Entry point for the pricing monitor command line."""

import argparse
import asyncio
import logging
import sys

from pricing_monitor.config.logging_config import setup_logging

logger = logging.getLogger("pricing_monitor.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pricing_monitor",
        description="Watch SaaS pricing pages and alert on changes.",
    )
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument(
        "--add",
        metavar="URL",
        default=None,
        help="Register a pricing page to monitor.",
    )
    actions.add_argument(
        "--list",
        action="store_true",
        default=False,
        help="List configured monitors.",
    )
    actions.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Check all active monitors (or one with --monitor).",
    )
    actions.add_argument(
        "--check-url",
        metavar="URL",
        default=None,
        help="Check a URL once without registering it (ad hoc).",
    )
    actions.add_argument(
        "--extract",
        metavar="FILE",
        default=None,
        help="Extract pricing from a saved HTML file (offline).",
    )
    actions.add_argument(
        "--history",
        metavar="ID",
        type=int,
        default=None,
        help="Show recorded pricing changes for a monitor.",
    )
    parser.add_argument(
        "--selector",
        default=None,
        help="CSS selector scoping the pricing section.",
    )
    parser.add_argument(
        "--index",
        type=int,
        default=None,
        help="1-based match of --selector to pin as the only card.",
    )
    parser.add_argument("--name", default=None, help="Monitor name.")
    parser.add_argument(
        "--email", default=None, help="Alert e-mail for this monitor.",
    )
    parser.add_argument(
        "--webhook", default=None, help="Chat webhook for this monitor.",
    )
    parser.add_argument(
        "--monitor",
        type=int,
        default=None,
        dest="monitor_id",
        help="With --check: only check this monitor id.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        dest="output_dir",
        help="Custom report directory (default: results/).",
    )
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected command and return its exit code."""
    from pricing_monitor.cli import runner

    if args.add is not None:
        return runner.run_add(
            url=args.add,
            selector=args.selector,
            index=args.index,
            name=args.name,
            email=args.email,
            webhook=args.webhook,
        )
    if args.list:
        return runner.run_list(args.output_format)
    if args.extract is not None:
        return runner.run_extract(
            args.extract, args.selector, args.index, args.output_format,
        )
    if args.history is not None:
        return runner.run_history(args.history, args.output_format)
    if args.check_url is not None:
        return asyncio.run(
            runner.cli_check_url(
                url=args.check_url,
                selector=args.selector,
                index=args.index,
                output_format=args.output_format,
                output_dir=args.output_dir,
            )
        )
    return asyncio.run(
        runner.cli_check(
            monitor_id=args.monitor_id,
            output_format=args.output_format,
            output_dir=args.output_dir,
        )
    )


def main() -> None:
    """Parse arguments and route to the CLI runner."""
    log_file = setup_logging()
    logger.info("pricing_monitor starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        exit_code = _dispatch(args)
    except Exception:
        logger.critical("Fatal error during CLI run", exc_info=True)
        raise
    finally:
        logger.info("pricing_monitor shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
