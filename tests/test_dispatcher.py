import asyncio
import socket
import time

from cmdfarm.dispatcher import Dispatcher, DispatchOutcome
from cmdfarm.protocol import MAX_CMD_LEN, CommandRequest
from cmdfarm.registry import Worker, WorkerRegistry


def _worker(port: int) -> Worker:
    channel = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    return Worker(host="127.0.0.1", port=port, address=("127.0.0.1", port), channel=channel)


class CountingRegistry(WorkerRegistry):
    """Returns None for the first ``empty_for`` selections."""

    def __init__(self, workers=None, empty_for=0):
        super().__init__(workers)
        self.empty_for = empty_for
        self.selections = 0

    def select_worker(self):
        self.selections += 1
        if self.selections <= self.empty_for:
            return None
        return super().select_worker()


def test_sends_request_to_first_worker(udp_receiver, drain):
    first_sock, first_port = udp_receiver()
    second_sock, second_port = udp_receiver()
    registry = WorkerRegistry([_worker(first_port), _worker(second_port)])
    dispatcher = Dispatcher(registry, backoff=0.01)

    async def go():
        return [await dispatcher.dispatch(f"echo {i}", "10.0.0.5", 40000) for i in range(3)]

    try:
        assert asyncio.run(go()) == [DispatchOutcome.SENT] * 3
        requests = [CommandRequest.decode(d) for d in drain(first_sock)]
        assert [r.command for r in requests] == ["echo 0", "echo 1", "echo 2"]
        assert {(r.originator_host, r.originator_port) for r in requests} == {("10.0.0.5", 40000)}
        assert drain(second_sock) == []
    finally:
        registry.close()


def test_empty_pool_waits_once_then_drops():
    registry = CountingRegistry([])
    events = []
    dispatcher = Dispatcher(registry, backoff=0.05, on_dispatch=lambda *args: events.append(args))

    start = time.monotonic()
    outcome = asyncio.run(dispatcher.dispatch("echo lost", "127.0.0.1", 1234))
    elapsed = time.monotonic() - start

    assert outcome is DispatchOutcome.DROPPED
    assert registry.selections == 2
    assert elapsed >= 0.05
    assert events == [("echo lost", DispatchOutcome.DROPPED, None)]


def test_worker_appearing_during_backoff(udp_receiver, drain):
    sock, port = udp_receiver()
    registry = CountingRegistry([_worker(port)], empty_for=1)
    dispatcher = Dispatcher(registry, backoff=0.01)
    try:
        assert asyncio.run(dispatcher.dispatch("ls", "127.0.0.1", 1)) is DispatchOutcome.SENT
        assert registry.selections == 2
        assert len(drain(sock)) == 1
    finally:
        registry.close()


def test_send_failure_is_reported_not_raised():
    worker = _worker(9)
    worker.channel.close()
    events = []
    dispatcher = Dispatcher(WorkerRegistry([worker]), on_dispatch=lambda *args: events.append(args))

    assert asyncio.run(dispatcher.dispatch("ls", "127.0.0.1", 1)) is DispatchOutcome.FAILED
    assert events == [("ls", DispatchOutcome.FAILED, worker)]


def test_oversized_command_is_rejected(udp_receiver, drain):
    sock, port = udp_receiver()
    registry = WorkerRegistry([_worker(port)])
    dispatcher = Dispatcher(registry)
    try:
        outcome = asyncio.run(dispatcher.dispatch("x" * MAX_CMD_LEN, "127.0.0.1", 1))
        assert outcome is DispatchOutcome.REJECTED
        assert drain(sock) == []
    finally:
        registry.close()
