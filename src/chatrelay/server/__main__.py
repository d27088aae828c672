import signal
import sys

import tap

from chatrelay.logging import get_logger, set_level
from chatrelay.common import Constants
from chatrelay.reactor import Reactor

LOGGER = get_logger(__name__)


class Args(tap.Tap):

    address: str = Constants.DEFAULT_ADDRESS
    """Local address to listen on."""

    port: int = Constants.DEFAULT_PORT
    """TCP port to listen on."""

    backlog: int = Constants.BACKLOG
    """Depth of the pending-connection queue."""

    timeout_ms: int = Constants.POLL_TIMEOUT_MS
    """Upper bound on a single readiness wait, in milliseconds."""

    verbose: bool = False
    """Log debug messages to stderr."""


def signal_handler(signum, frame):
    LOGGER.warning("Signal %d received.", signum)


def install_signal_handlers():
    # Interrupted waits are retried, so these only report the delivery.
    for signum in (signal.SIGUSR1, signal.SIGUSR2):
        signal.signal(signum, signal_handler)


def main(args: Args) -> int:
    if args.verbose:
        set_level("DEBUG")

    try:
        install_signal_handlers()
        reactor = Reactor(timeout_ms=args.timeout_ms, backlog=args.backlog)
        reactor.run(args.address, args.port)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"error: {str(e) or 'unhandled exception'}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    args = Args(underscores_to_dashes=True).parse_args()
    raise SystemExit(main(args))
