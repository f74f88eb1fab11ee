#!/usr/bin/env python3
"""Entry point for lb_tracker package."""

import sys

from .cli import parse_args, connect_and_run, run_report_command
from .config import config_from_args


def main():
    args = parse_args()
    if args.command == "report":
        sys.exit(run_report_command(args))
    connect_and_run(config_from_args(args))


if __name__ == "__main__":
    main()
