"""Main entry point for the Snapmixer terminal mixer."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from snapmixer import __version__
from snapmixer.api.client import SnapcastClient
from snapmixer.api.errors import ConnectError
from snapmixer.api.rpc import JsonRpcClient
from snapmixer.core.config import ConfigManager
from snapmixer.core.mixer import MixerController
from snapmixer.models.endpoint import Endpoint
from snapmixer.ui.app import MixerApp
from snapmixer.ui.render import KEY_HELP

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser(config: ConfigManager) -> argparse.ArgumentParser:
    """Build the command line parser with defaults from the stored config."""
    key_width = max(len(keys) for keys, _ in KEY_HELP)
    keys = "\n".join(f"  {k.ljust(key_width)}  {d}" for k, d in KEY_HELP)
    parser = argparse.ArgumentParser(
        prog="snapmixer",
        description="Control Snapcast volumes.",
        epilog=f"Keys:\n{keys}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-s",
        "--server",
        metavar="HOST[:PORT]",
        default=str(config.get_endpoint()),
        help="Snapcast server (default: %(default)s)",
    )
    parser.add_argument(
        "--step",
        type=int,
        default=config.get_volume_step(),
        help="volume change per arrow key (default: %(default)s)",
    )
    parser.add_argument(
        "--large-step",
        type=int,
        default=config.get_volume_large_step(),
        help="volume change per shifted arrow key (default: %(default)s)",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="remember the server and steps as defaults",
    )
    parser.add_argument("--log-file", metavar="PATH", help="write log messages to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(log_file: str | None, verbose: bool) -> None:
    """Set up logging.

    The terminal belongs to the UI, so without a log file only errors are
    written to stderr.
    """
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=logging.DEBUG if verbose else logging.INFO,
            format=_LOG_FORMAT,
        )
    else:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.ERROR,
            format=_LOG_FORMAT,
        )


async def run(endpoint: Endpoint, step: int, large_step: int) -> int:
    """Connect and run the mixer until the user quits.

    Returns:
        Exit code (0 for success).
    """
    rpc = JsonRpcClient(endpoint)
    try:
        await rpc.open()
    except ConnectError as e:
        print(f"Couldn't connect to Snapcast server: {e}", file=sys.stderr)
        return 1

    try:
        controller = MixerController(SnapcastClient(rpc))
        await MixerApp(controller, rpc, step=step, large_step=large_step).run()
    finally:
        await rpc.close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Snapmixer application.

    Returns:
        Exit code (0 for success).
    """
    config = ConfigManager()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    configure_logging(args.log_file, args.verbose)

    try:
        endpoint = Endpoint.parse(args.server)
    except ValueError as e:
        parser.error(str(e))
    if args.step < 1 or args.large_step < 1:
        parser.error("volume steps must be at least 1")

    if args.save:
        config.set_endpoint(endpoint)
        config.set_volume_step(args.step)
        config.set_volume_large_step(args.large_step)
        config.sync()
        logger.info("Saved %s as default server", endpoint)

    logger.info("Starting Snapmixer %s for %s", __version__, endpoint)
    try:
        return asyncio.run(run(endpoint, args.step, args.large_step))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
