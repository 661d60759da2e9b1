import datetime as dt
import threading

from csp_collector.buffer import ReportBuffer
from csp_collector.schemas import CspReport, ReportRecord


def _record(directive: str) -> ReportRecord:
    return ReportRecord.from_report(
        CspReport(violated_directive=directive),
        created_at=dt.datetime.now(dt.timezone.utc),
    )


def test_drain_preserves_append_order():
    buffer = ReportBuffer()
    for i in range(5):
        assert buffer.append(_record(f"script-src {i}"))
    assert len(buffer) == 5

    drained = buffer.drain()
    assert [r.violated_directive for r in drained] == [f"script-src {i}" for i in range(5)]
    assert len(buffer) == 0


def test_second_drain_is_empty():
    buffer = ReportBuffer()
    buffer.append(_record("img-src"))
    assert len(buffer.drain()) == 1
    assert buffer.drain() == []


class PausingBuffer(ReportBuffer):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def _take(self):
        self.entered.set()
        self.release.wait(timeout=5)
        return super()._take()


def test_append_dropped_while_draining():
    buffer = PausingBuffer()
    buffer.append(_record("img-src"))
    drained: list[ReportRecord] = []
    drainer = threading.Thread(target=lambda: drained.extend(buffer.drain()))
    drainer.start()
    assert buffer.entered.wait(timeout=5)

    assert buffer.append(_record("script-src")) is False

    buffer.release.set()
    drainer.join(timeout=5)
    assert [r.violated_directive for r in drained] == ["img-src"]
    assert len(buffer) == 0
    assert buffer.append(_record("style-src")) is True
    assert len(buffer) == 1


def test_concurrent_appends_are_drained_exactly_once():
    buffer = ReportBuffer()
    producers, per_producer = 8, 300
    accepted: list[list[str]] = [[] for _ in range(producers)]
    drained: list[ReportRecord] = []
    done = threading.Event()

    def produce(index: int):
        for i in range(per_producer):
            directive = f"{index}:{i}"
            if buffer.append(_record(directive)):
                accepted[index].append(directive)

    def consume():
        while not done.is_set():
            drained.extend(buffer.drain())

    consumer = threading.Thread(target=consume)
    consumer.start()
    threads = [threading.Thread(target=produce, args=(i,)) for i in range(producers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    done.set()
    consumer.join()
    drained.extend(buffer.drain())

    directives = [r.violated_directive for r in drained]
    assert len(directives) == len(set(directives))
    assert sorted(directives) == sorted(d for batch in accepted for d in batch)
    assert len(directives) <= producers * per_producer
    for index in range(producers):
        mine = [d for d in directives if d.startswith(f"{index}:")]
        assert mine == accepted[index]
