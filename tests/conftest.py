import socket

import pytest

from cmdfarm.config import Settings


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    monkeypatch.delenv("CMDFARM_CONFIG", raising=False)


@pytest.fixture
def udp_receiver():
    """Factory for bound loopback UDP sockets standing in for workers."""
    sockets = []

    def make() -> tuple[socket.socket, int]:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("127.0.0.1", 0))
        sock.settimeout(2.0)
        sockets.append(sock)
        return sock, sock.getsockname()[1]

    yield make
    for sock in sockets:
        sock.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(listen_host="127.0.0.1", coordinator_port=0, backoff=0.01, submitter_wait=0.0)


def _drain(sock: socket.socket, timeout: float = 0.2) -> list[bytes]:
    """Collect every datagram currently queued on a socket."""
    sock.settimeout(timeout)
    datagrams = []
    try:
        while True:
            datagrams.append(sock.recv(65535))
    except socket.timeout:
        pass
    return datagrams


@pytest.fixture
def drain():
    return _drain
