import dataclasses
import enum
import os
import select

from .common import Constants, LocalIOError
from .logging import get_logger
from .transport import Transport


LOGGER = get_logger(__name__)

HANGUP_EVENTS = select.POLLHUP | select.POLLERR


class Slot(enum.IntEnum):
    STDIN = 0
    STDOUT = 1
    STDERR = 2
    SERVER = 3
    CLIENT = 4


@dataclasses.dataclass(slots=True)
class WatchEntry:
    fd: int = -1
    events: int = 0
    revents: int = 0

    @property
    def active(self) -> bool:
        return self.fd >= 0


class Reactor:
    """Single-threaded relay between the local console and one TCP peer.

    Five watch slots are polled and dispatched in the fixed order of
    :class:`Slot`. Every closure or hang-up converges on :meth:`quit`.
    """

    def __init__(
        self,
        *,
        stdin: int = 0,
        stdout: int = 1,
        stderr: int = 2,
        timeout_ms: int = Constants.POLL_TIMEOUT_MS,
        backlog: int = Constants.BACKLOG
    ):
        self._timeout_ms = timeout_ms
        self._backlog = backlog

        self._watches = (
            WatchEntry(stdin, select.POLLIN),
            WatchEntry(stdout),
            WatchEntry(stderr),
            WatchEntry(),
            WatchEntry(),
        )
        self._handlers = (
            self._on_stdin,
            self._on_stdout,
            self._on_stderr,
            self._on_server,
            self._on_client,
        )

        self._poller = select.poll()
        for entry in self._watches:
            if entry.active:
                self._poller.register(entry.fd, entry.events)

        self.server = Transport()
        self.client = Transport()
        self._quit = False

    @property
    def terminated(self) -> bool:
        return self._quit

    def watch(self, slot: Slot) -> WatchEntry:
        return self._watches[slot]

    def _activate(self, slot: Slot, fd: int, events: int):
        entry = self._watches[slot]
        if entry.active:
            self._poller.unregister(entry.fd)
        entry.fd = fd
        entry.events = events
        entry.revents = 0
        self._poller.register(fd, events)
        LOGGER.debug("Activated %s slot with descriptor %d.", slot.name, fd)

    def _deactivate(self, slot: Slot):
        entry = self._watches[slot]
        if not entry.active:
            return
        # poll.unregister does not touch the descriptor, so it is safe after close.
        self._poller.unregister(entry.fd)
        LOGGER.debug("Deactivated %s slot (descriptor %d).", slot.name, entry.fd)
        entry.fd = -1

    def start(self, address: str, port: int):
        self.server.create()
        self.server.reuse_address = True
        self.server.bind(address, port)
        self.server.listen(self._backlog)
        self._activate(Slot.SERVER, self.server.fd, select.POLLIN)

    def run(self, address: str, port: int):
        if self._quit:
            return
        try:
            self.start(address, port)
            while not self._quit:
                self.step()
        finally:
            self.server.release()
            self.client.release()

    def step(self) -> int:
        """Waits for readiness once and dispatches every slot.

        Returns
        -------
        int
            The number of descriptors reported ready.
        """

        for entry in self._watches:
            entry.revents = 0

        # A signal interrupting poll() runs its handler and the wait is retried.
        ready = self._poller.poll(self._timeout_ms)
        if not ready:
            return 0

        revents = dict(ready)
        for entry in self._watches:
            if entry.active:
                entry.revents = revents.get(entry.fd, 0)

        for slot, handler in zip(Slot, self._handlers):
            entry = self._watches[slot]
            handler(entry)
            if entry.revents & HANGUP_EVENTS:
                self._on_error(slot)

        return len(ready)

    def quit(self):
        self.server.close()
        self.client.close()
        self._deactivate(Slot.SERVER)
        self._deactivate(Slot.CLIENT)
        if not self._quit:
            LOGGER.info("Shutting down.")
        self._quit = True

    def _on_error(self, slot: Slot):
        LOGGER.info("Hang-up or error on %s slot.", slot.name)
        self._deactivate(slot)
        self.quit()

    def _on_stdin(self, entry: WatchEntry):
        if not entry.active:
            return
        if entry.revents & select.POLLIN:
            try:
                data = os.read(entry.fd, Constants.BUFFER_SIZE)
            except OSError as e:
                raise LocalIOError(e) from e
            if self.client.is_open:
                self.client.send(data)

    def _on_stdout(self, entry: WatchEntry):
        if not entry.active:
            return

    def _on_stderr(self, entry: WatchEntry):
        if not entry.active:
            return

    def _on_server(self, entry: WatchEntry):
        if not entry.active:
            return
        if entry.revents & select.POLLIN:
            fd = self.server.accept()
            if self.client.is_open:
                LOGGER.info("Rejecting connection: a peer is already connected.")
                Transport(fd).close()
                return
            self.client.reset(fd)
            self._activate(Slot.CLIENT, self.client.fd, select.POLLIN)
        if not self.server.is_open:
            self._deactivate(Slot.SERVER)
            self.quit()

    def _on_client(self, entry: WatchEntry):
        if not entry.active:
            return
        if entry.revents & select.POLLIN:
            data = b""
            if self.client.is_open:
                data = self.client.receive()
            self._write_stdout(data)
        if not self.client.is_open:
            self._deactivate(Slot.CLIENT)
            self.quit()

    def _write_stdout(self, data: bytes):
        fd = self._watches[Slot.STDOUT].fd
        if fd < 0:
            return
        view = memoryview(data)
        while view:
            written = os.write(fd, view)
            view = view[written:]
