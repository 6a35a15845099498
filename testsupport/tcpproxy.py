"""A TCP proxy that tests can use to break or stall connections on purpose."""

from __future__ import annotations

import socket
import threading
from typing import Any

_BUFFER_SIZE = 32 * 1024
_ACCEPT_POLL_SECONDS = 0.1


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address!r} has no port")
    return host.strip("[]"), int(port)


def _close_socket(sock: socket.socket) -> None:
    # Shutting down first wakes any thread blocked reading the socket.
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        sock.close()
    except OSError:
        pass


class TCPProxy:
    """Copies traffic between local clients and ``remote_addr``.

    The proxy listens on 127.0.0.1. Every accepted connection is paired
    with a new connection to the remote address. Closing the proxy closes
    its listener and every connection made through it. Problems met
    while accepting or dialling are collected in :attr:`errors`.
    """

    def __init__(self, remote_addr: str) -> None:
        self._remote = _split_address(remote_addr)
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen()
        self._listener.settimeout(_ACCEPT_POLL_SECONDS)
        host, port = self._listener.getsockname()[:2]
        self._addr = f"{host}:{port}"
        self._lock = threading.Lock()
        self._pause_changed = threading.Condition(self._lock)
        self._closed = False
        self._paused = False
        self._conns: list[socket.socket] = []
        self.errors: list[str] = []
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()

    def _is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def _record_error(self, message: str) -> None:
        with self._lock:
            self.errors.append(message)

    def _add_conn(self, conn: socket.socket) -> None:
        with self._lock:
            if self._closed:
                _close_socket(conn)
            else:
                self._conns.append(conn)

    def _accept_loop(self) -> None:
        while True:
            try:
                client, _ = self._listener.accept()
            except socket.timeout:
                if self._is_closed():
                    return
                continue
            except OSError as err:
                if not self._is_closed():
                    self._record_error(f"cannot accept: {err}")
                return
            client.setblocking(True)
            self._add_conn(client)
            try:
                server = socket.create_connection(self._remote)
            except OSError as err:
                if not self._is_closed():
                    self._record_error(f"cannot dial remote address: {err}")
                return
            self._add_conn(server)
            for dst, src in ((client, server), (server, client)):
                threading.Thread(target=self._stream, args=(dst, src), daemon=True).start()

    def _stream(self, dst: socket.socket, src: socket.socket) -> None:
        try:
            while True:
                try:
                    data = src.recv(_BUFFER_SIZE)
                except OSError:
                    data = b""
                with self._pause_changed:
                    while self._paused:
                        self._pause_changed.wait()
                if not data:
                    break
                try:
                    dst.sendall(data)
                except OSError:
                    break
        finally:
            _close_socket(dst)
            _close_socket(src)

    def close(self) -> None:
        """Close the listener and every connection made through the proxy."""
        with self._lock:
            self._closed = True
            _close_socket(self._listener)
            for conn in self._conns:
                _close_socket(conn)
        if threading.current_thread() is not self._accept_thread:
            self._accept_thread.join(timeout=1.0)

    def close_conns(self) -> None:
        """Close the connections made so far; the proxy keeps accepting."""
        with self._lock:
            for conn in self._conns:
                _close_socket(conn)

    def pause_conns(self) -> None:
        """Stop all traffic through the proxy."""
        with self._pause_changed:
            self._paused = True
            self._pause_changed.notify_all()

    def resume_conns(self) -> None:
        """Let traffic flow through the proxy again."""
        with self._pause_changed:
            self._paused = False
            self._pause_changed.notify_all()

    def addr(self) -> str:
        """The ``host:port`` address that clients dial to reach the remote."""
        return self._addr

    def __enter__(self) -> "TCPProxy":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()