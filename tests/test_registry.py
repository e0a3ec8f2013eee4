import socket
from pathlib import Path

import pytest

from cmdfarm.errors import WorkerListError
from cmdfarm.registry import WorkerRegistry, parse_entry


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "workers.txt"
    path.write_text(text)
    return path


def test_load_skips_blank_comment_and_malformed(tmp_path: Path):
    path = _write(
        tmp_path,
        "# workers\n"
        "localhost 10001\n"
        "\n"
        "garbage\n"
        "localhost notaport\n"
        "   \n"
        "127.0.0.1 10002 extra-field\n"
        "localhost 0\n"
        "localhost 10003",
    )
    registry = WorkerRegistry.load(path)
    try:
        assert [(w.host, w.port) for w in registry] == [
            ("localhost", 10001),
            ("127.0.0.1", 10002),
            ("localhost", 10003),
        ]
        assert all(w.available for w in registry)
        assert registry.workers[0].address == ("127.0.0.1", 10001)
    finally:
        registry.close()


def test_load_stops_at_max_workers(tmp_path: Path):
    path = _write(tmp_path, "".join(f"localhost {10000 + i}\n" for i in range(15)))
    registry = WorkerRegistry.load(path, max_workers=10)
    try:
        assert len(registry) == 10
        assert registry.workers[-1].port == 10009
    finally:
        registry.close()


def test_unresolvable_host_is_discarded(tmp_path: Path, monkeypatch):
    real = socket.gethostbyname

    def fake_gethostbyname(host):
        if host == "nowhere.invalid":
            raise socket.gaierror("not found")
        return real(host)

    monkeypatch.setattr(socket, "gethostbyname", fake_gethostbyname)
    path = _write(tmp_path, "nowhere.invalid 10001\nlocalhost 10002\n")
    registry = WorkerRegistry.load(path)
    try:
        assert [w.port for w in registry] == [10002]
    finally:
        registry.close()


def test_zero_workers(tmp_path: Path):
    registry = WorkerRegistry.load(_write(tmp_path, "# nothing\n\nbad line here\n"))
    assert len(registry) == 0
    assert registry.select_worker() is None


def test_missing_worker_list(tmp_path: Path):
    with pytest.raises(WorkerListError):
        WorkerRegistry.load(tmp_path / "missing.txt")


def test_select_is_first_available(tmp_path: Path):
    registry = WorkerRegistry.load(_write(tmp_path, "localhost 10001\nlocalhost 10002\n"))
    try:
        first, second = registry.workers
        # Always the first entry, never round-robin
        assert [registry.select_worker() for _ in range(3)] == [first, first, first]

        first.available = False
        assert registry.select_worker() is second
        second.available = False
        assert registry.select_worker() is None
    finally:
        registry.close()


@pytest.mark.parametrize(
    "line,expected",
    [
        ("host 80", ("host", 80)),
        ("host 80 trailing", ("host", 80)),
        ("host", None),
        ("host -1", None),
        ("host 65536", None),
        ("h" * 256 + " 80", None),
    ],
)
def test_parse_entry(line, expected):
    assert parse_entry(line) == expected
