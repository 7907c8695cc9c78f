"""depupdate - Upgrade pinned dependencies in deno.json and import maps

    Returns:
        int: Exit code
"""
import asyncio
import logging
import os
import re
import sys

from constants import ExitCodes, Constants
from common.errors import NetworkError, RegistryError
from common.http_client import HttpClient
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from manifest.config import ConfigError, load_config
from manifest.import_map import ManifestError, update

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(file_handler)


async def run(args):
    """Run one update over the directory named in ``args``.

    Returns:
        list: Paths of the import maps that changed.
    """
    directory = args.directory or os.getcwd()
    config = load_config(args.CONFIG, directory)
    include = re.compile(args.INCLUDE) if args.INCLUDE else config.include

    async with HttpClient(timeout=args.TIMEOUT) as client:
        return await update(
            directory,
            dry_run=args.DRY_RUN,
            logs=not args.QUIET,
            include=include,
            required_min_versions=config.required_min_versions,
            allow_prerelease=args.ALLOW_PRE,
            force=args.FORCE,
            client=client,
        )


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        changed = asyncio.run(run(args))
    except (ManifestError, ConfigError, OSError) as e:
        logging.error("%s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except re.error as e:
        logging.error("Invalid --include pattern: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except NetworkError as e:
        logging.error("%s, aborting", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except RegistryError as e:
        logging.error("%s, aborting", e)
        sys.exit(ExitCodes.PARSE_ERROR.value)

    if args.DRY_RUN:
        for path in changed:
            logging.info("Would update %s", path)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
