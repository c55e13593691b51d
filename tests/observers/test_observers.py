import json
import logging

from vps_setup.observers.dispatcher import EventBus
from vps_setup.observers.events import RunSummary, StepStarted, new_ctx
from vps_setup.observers.interface import Observer
from vps_setup.observers.jsonfile import JsonFileObserver
from vps_setup.observers.logger import LoggerObserver


# Simple capturing observer
class Capture:
    def __init__(self): self.events = []
    def notify(self, event): self.events.append(event)


class Broken:
    def notify(self, event): raise RuntimeError("disk full")


def test_jsonfile_writes_one_record_per_event(tmp_path):
    path = tmp_path / "log" / "setup-run.jsonl"
    bus = EventBus([JsonFileObserver(path)])

    bus.emit(StepStarted(step="ssh", index=3, total=6, **new_ctx(run_id="r1", host="vps1")))
    bus.emit(RunSummary(status="COMPLETED", mode="public", **new_ctx(run_id="r1", host="vps1")))

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["event"] for r in records] == ["StepStarted", "RunSummary"]
    assert records[0]["step"] == "ssh"
    assert records[1]["mode"] == "public"
    assert all(r["run_id"] == "r1" and r["host"] == "vps1" for r in records)


def test_failing_observer_does_not_stop_others():
    cap = Capture()
    bus = EventBus([Broken(), cap])
    bus.emit(RunSummary(status="ABORTED", error="boom", **new_ctx()))
    assert [e.status for e in cap.events] == ["ABORTED"]


def test_shipped_observers_satisfy_protocol(tmp_path):
    assert isinstance(JsonFileObserver(tmp_path / "x.jsonl"), Observer)
    assert isinstance(LoggerObserver(logging.getLogger("vps_setup")), Observer)
    assert isinstance(Capture(), Observer)
