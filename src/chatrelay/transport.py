import errno
import os
import socket

from .common import Constants, TransportError
from .logging import get_logger


LOGGER = get_logger(__name__)


class Transport:
    """Owns at most one TCP endpoint.

    The descriptor is ``-1`` while the transport is unused. Adopting or
    creating a descriptor always releases the previously owned one first.
    """

    def __init__(self, fd: int = -1):
        self._sock: socket.socket | None = None
        if fd >= 0:
            self._sock = self._adopt(fd)

    def __del__(self):
        self.release()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    @property
    def fd(self) -> int:
        if self._sock is None:
            return -1
        return self._sock.fileno()

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @staticmethod
    def _adopt(fd: int) -> socket.socket:
        try:
            return socket.socket(fileno=fd)
        except OSError as e:
            raise TransportError("socket", e) from e

    def _require(self, operation: str) -> socket.socket:
        if self._sock is None:
            raise TransportError(operation, OSError(errno.EBADF, os.strerror(errno.EBADF)))
        return self._sock

    def create(self):
        if self._sock is not None:
            return
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise TransportError("socket", e) from e
        LOGGER.debug("Created socket %d.", self._sock.fileno())

    def close(self):
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        fd = sock.fileno()
        try:
            sock.close()
        except OSError as e:
            raise TransportError("close", e) from e
        LOGGER.debug("Closed socket %d.", fd)

    def release(self):
        """Closes the transport without ever raising. Used on teardown paths."""

        # __del__ may run on a partially constructed instance.
        if getattr(self, "_sock", None) is None:
            return
        try:
            self.close()
        except TransportError as e:
            LOGGER.warning("Ignoring failure while releasing transport: %s", e.message)

    def reset(self, fd: int):
        self.close()
        if fd >= 0:
            self._sock = self._adopt(fd)
            LOGGER.debug("Adopted socket %d.", fd)

    def bind(self, address: str, port: int):
        sock = self._require("bind")
        try:
            sock.bind((address, port))
        except OSError as e:
            raise TransportError("bind", e) from e

    def listen(self, backlog: int):
        sock = self._require("listen")
        try:
            sock.listen(backlog)
        except OSError as e:
            raise TransportError("listen", e) from e
        LOGGER.info("Listening on %s:%d.", *self.local_address)

    def accept(self) -> int:
        """Accepts a pending connection.

        Returns
        -------
        int
            The descriptor of the accepted peer. The caller owns it.
        """

        sock = self._require("accept")
        try:
            conn, addr = sock.accept()
        except OSError as e:
            raise TransportError("accept", e) from e
        LOGGER.info("Accepted connection from %s:%d.", *addr)
        return conn.detach()

    def send(self, data: bytes):
        sock = self._require("send")
        try:
            sent = sock.send(data)
        except OSError as e:
            raise TransportError("send", e) from e
        if sent < len(data):
            LOGGER.warning("Short write: sent %d of %d bytes.", sent, len(data))

    def receive(self) -> bytes:
        sock = self._require("recv")
        try:
            data = sock.recv(Constants.BUFFER_SIZE)
        except OSError as e:
            raise TransportError("recv", e) from e
        if data == b"":
            LOGGER.info("Peer closed the connection.")
            self.close()
        return data

    @property
    def local_address(self) -> tuple[str, int]:
        sock = self._require("getsockname")
        try:
            return sock.getsockname()
        except OSError as e:
            raise TransportError("getsockname", e) from e

    def _get_option(self, option: int) -> int:
        sock = self._require("getsockopt")
        try:
            return sock.getsockopt(socket.SOL_SOCKET, option)
        except OSError as e:
            raise TransportError("getsockopt", e) from e

    def _set_option(self, option: int, value: int):
        sock = self._require("setsockopt")
        try:
            sock.setsockopt(socket.SOL_SOCKET, option, value)
        except OSError as e:
            raise TransportError("setsockopt", e) from e

    @property
    def is_listening(self) -> bool:
        return bool(self._get_option(socket.SO_ACCEPTCONN))

    @property
    def keep_alive(self) -> bool:
        return bool(self._get_option(socket.SO_KEEPALIVE))

    @keep_alive.setter
    def keep_alive(self, value: bool):
        self._set_option(socket.SO_KEEPALIVE, int(value))

    @property
    def reuse_address(self) -> bool:
        return bool(self._get_option(socket.SO_REUSEADDR))

    @reuse_address.setter
    def reuse_address(self, value: bool):
        self._set_option(socket.SO_REUSEADDR, int(value))

    @property
    def send_buffer_size(self) -> int:
        return self._get_option(socket.SO_SNDBUF)

    @send_buffer_size.setter
    def send_buffer_size(self, value: int):
        self._set_option(socket.SO_SNDBUF, value)

    @property
    def receive_buffer_size(self) -> int:
        return self._get_option(socket.SO_RCVBUF)

    @receive_buffer_size.setter
    def receive_buffer_size(self, value: int):
        self._set_option(socket.SO_RCVBUF, value)
