"""Argument parsing functionality for depupdate."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="depupdate",
        description=(
            "depupdate - Upgrade pinned dependencies in deno.json and import maps"
        ),
        add_help=True,
    )

    parser.add_argument("directory",
                        help="Directory containing deno.json (default: current directory)",
                        nargs="?",
                        default=None)
    parser.add_argument("--allow-pre",
                        dest="ALLOW_PRE",
                        help="Allow pre-release versions as upgrade targets.",
                        action="store_true")
    parser.add_argument("--force",
                        dest="FORCE",
                        help="Upgrade entries whose pinned version is not a semantic version.",
                        action="store_true")
    parser.add_argument("-i", "--include",
                        dest="INCLUDE",
                        help="Regular expression selecting the aliases to upgrade.",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("-n", "--dry-run",
                        dest="DRY_RUN",
                        help="Report upgrades without writing files.",
                        action="store_true")
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Total timeout in seconds for each registry request (default: none)",
                        action="store",
                        type=float)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print upgrade progress.",
                        action="store_true")

    return parser.parse_args(argv)
