from __future__ import annotations

import socket
from collections.abc import Iterator

from bedrock.errors import ConfigurationError

DEFAULT_BIND_ADDRESS = "127.0.0.1"


class AvailablePortIterator(Iterator[int]):
    # Yields ports in [start, end] that can currently be bound on the bind address.
    # A port is handed out once per iterator; availability is checked at the time of next().
    def __init__(self, start: int = 30000, end: int = 65535, *, bind_address: str = DEFAULT_BIND_ADDRESS) -> None:
        if not 0 < start <= end < 65536:
            raise ConfigurationError(f"Invalid port range {start}..{end}")
        self._next = start
        self._end = end
        self._bind_address = bind_address

    @classmethod
    def ephemeral(cls, *, bind_address: str = DEFAULT_BIND_ADDRESS) -> int:
        # Port chosen by the operating system.
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as candidate:
            candidate.bind((bind_address, 0))
            return int(candidate.getsockname()[1])

    @property
    def bind_address(self) -> str:
        return self._bind_address

    def __iter__(self) -> AvailablePortIterator:
        return self

    def __next__(self) -> int:
        while self._next <= self._end:
            candidate = self._next
            self._next += 1
            if is_port_available(candidate, bind_address=self._bind_address):
                return candidate
        raise StopIteration


def is_port_available(port: int, *, bind_address: str = DEFAULT_BIND_ADDRESS) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as candidate:
        try:
            candidate.bind((bind_address, port))
        except OSError:
            return False
    return True
