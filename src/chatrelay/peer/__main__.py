import asyncio
import sys
from typing import Callable

import tap
from tqdm import tqdm

from chatrelay.logging import get_logger, set_level
from chatrelay.common import Constants

LOGGER = get_logger(__name__)


class Args(tap.Tap):

    host: str = "localhost"
    """Host running the relay server."""

    port: int = Constants.DEFAULT_PORT
    """Port of the relay server."""

    progress: bool = False
    """Show a running count of bytes received from the relay on stderr."""

    verbose: bool = False
    """Log debug messages to stderr."""


async def connect_stdin_stdout():
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    w_transport, w_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(w_transport, w_protocol, reader, loop)
    return reader, writer


class Relay:
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        progress: tqdm | None = None
    ):
        self._reader = reader
        self._writer = writer
        self._progress = progress

    async def serve(self) -> int:
        """Copies bytes from the reader to the writer until EOF.

        Returns
        -------
        int
            Total number of bytes copied.
        """

        total = 0
        while True:
            data = await self._reader.read(Constants.PEER_READ_SIZE)

            if not data:
                break

            self._writer.write(data)
            await self._writer.drain()

            total += len(data)
            if self._progress is not None:
                self._progress.update(len(data))

        return total


async def bridge(
    upstream: Relay,
    downstream: Relay,
    *,
    half_close: Callable[[], None] | None = None
):
    """Runs both directions of a session.

    When the upstream side reaches EOF, ``half_close`` is called and the
    downstream side keeps running until the remote end closes. When the
    downstream side ends first, the upstream relay is cancelled.
    """

    upstream_task = asyncio.create_task(upstream.serve())
    downstream_task = asyncio.create_task(downstream.serve())
    done_tasks, _ = await asyncio.wait(
        [upstream_task, downstream_task], return_when=asyncio.FIRST_COMPLETED
    )

    if upstream_task in done_tasks:
        await upstream_task
        if half_close is not None:
            half_close()
        await downstream_task
        return

    upstream_task.cancel()
    try:
        await upstream_task
    except asyncio.CancelledError:
        pass
    await downstream_task


async def main(args: Args):
    if args.verbose:
        set_level("DEBUG")

    stdin, stdout = await connect_stdin_stdout()
    socketin, socketout = await asyncio.open_connection(args.host, args.port)
    LOGGER.info("Connected to %s:%d.", args.host, args.port)

    with tqdm(desc="Bytes received", unit="B", disable=not args.progress) as pbar:
        relay1 = Relay(stdin, socketout)
        relay2 = Relay(socketin, stdout, progress=pbar)
        await bridge(relay1, relay2, half_close=socketout.write_eof)

    socketout.close()
    await socketout.wait_closed()
    LOGGER.info("Connection closed.")


if __name__ == "__main__":
    args = Args(underscores_to_dashes=True).parse_args()
    asyncio.run(main(args))
