import argparse
import json
import sys

from ..config import get_settings
from ..logging_config import configure_logging
from .registry import find_job, jobs_for_environment, run_job


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schoolmed-jobs",
        description="Inspect the recurring job table or run one job immediately.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("list", help="Show the jobs scheduled for the current environment")
    run = subcommands.add_parser("run", help="Run a single job once in this process")
    run.add_argument("name", help="Job name, e.g. health-events-all")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "list":
        for definition in jobs_for_environment(settings):
            print(f"{definition.name:<36} {definition.cron:<20} {definition.queue:<9} {definition.target}")
        return 0

    definition = find_job(args.name, settings)
    if definition is None:
        print(f"Unknown job: {args.name}", file=sys.stderr)
        return 2
    result = run_job(definition, settings)
    print(json.dumps({"job": definition.name, "result": result}, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
