import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from containerbuilder.builder import scheduler as scheduler_module
from containerbuilder.builder import ArtifactGate, Resolver, Scheduler, TargetStateMachine
from containerbuilder.constants import TargetStatus
from containerbuilder.exceptions import ConfigurationError
from conftest import RecordingBackend

NAMES = ("a", "b", "c", "d")


@pytest.fixture
def machines_for(make_catalog, make_request):
    def _make(backend, scheduler, **fields):
        request = make_request(**fields)
        request.output_dir.mkdir(parents=True, exist_ok=True)
        targets = Resolver(make_catalog(names=NAMES), request.output_dir).resolve([])
        gate = ArtifactGate(request.force)
        return [TargetStateMachine(t, request, backend, gate, scheduler.stop) for t in targets]
    return _make


class TestScheduler:

    def test_parallelism_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            Scheduler(parallel=0)

    @pytest.mark.parametrize("parallel", [1, 2, 3])
    def test_never_exceeds_parallel_limit(self, machines_for, parallel):
        backend = RecordingBackend(delay=0.05)
        scheduler = Scheduler(parallel=parallel)
        outcomes = scheduler.run(machines_for(backend, scheduler, test=True))
        assert [o.status for o in outcomes] == [TargetStatus.DONE] * len(NAMES)
        assert backend.max_active <= parallel

    def test_runs_concurrently_when_allowed(self, machines_for):
        backend = RecordingBackend(delay=0.2)
        scheduler = Scheduler(parallel=4)
        scheduler.run(machines_for(backend, scheduler))
        assert backend.max_active > 1

    def test_single_worker_admits_in_resolver_order(self, machines_for, backend):
        scheduler = Scheduler(parallel=1)
        scheduler.run(machines_for(backend, scheduler))
        assert [name for stage, name in backend.calls] == list(NAMES)

    def test_outcomes_returned_in_resolver_order(self, machines_for):
        backend = RecordingBackend(delay=0.01)
        scheduler = Scheduler(parallel=4)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert [o.target for o in outcomes] == list(NAMES)

    def test_failure_does_not_stop_siblings(self, machines_for):
        backend = RecordingBackend(fail={("build", "a"): "broken"})
        scheduler = Scheduler(parallel=1)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert [o.status for o in outcomes] == [
            TargetStatus.FAILED, TargetStatus.DONE, TargetStatus.DONE, TargetStatus.DONE,
        ]
        assert not scheduler.stop.is_set()

    def test_fail_fast_stops_later_targets_cooperatively(self, machines_for):
        backend = RecordingBackend(fail={("build", "a"): "broken"})
        scheduler = Scheduler(parallel=1, fail_fast=True)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert outcomes[0].error == "build failed: broken"
        assert all(o.status == TargetStatus.FAILED for o in outcomes)
        assert all(o.error == "cancelled before build" for o in outcomes[1:])
        assert backend.touched == {"a"}

    def test_workers_never_share_temporary_directories(self, machines_for, tmp_path):
        backend = RecordingBackend(delay=0.05)
        scheduler = Scheduler(parallel=2)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert all(o.status == TargetStatus.DONE for o in outcomes)
        dirs = [backend.tmp_dirs[name] for name in NAMES]
        assert len(set(dirs)) == len(NAMES)
        assert all(d.parent == tmp_path / "tmp" and d.name.endswith(name) for d, name in zip(dirs, NAMES))

    def test_interrupt_while_waiting_lets_running_stage_finish(self, machines_for, monkeypatch):
        started = threading.Event()
        stop = threading.Event()

        class SlowFirstBackend(RecordingBackend):
            def build(self, definition, output, options):
                if definition.parent.name == "a":
                    started.set()
                    stop.wait(5)
                return super().build(definition, output, options)

        real_wait = scheduler_module.wait
        interrupted = []

        def interrupting_wait(fs, return_when):
            if not interrupted:
                interrupted.append(True)
                started.wait(5)
                raise KeyboardInterrupt
            return real_wait(fs, return_when=return_when)

        monkeypatch.setattr(scheduler_module, "wait", interrupting_wait)
        backend = SlowFirstBackend()
        scheduler = Scheduler(parallel=1, stop=stop)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert [o.target for o in outcomes] == list(NAMES)
        assert outcomes[0].status == TargetStatus.DONE
        assert all(o.status == TargetStatus.FAILED for o in outcomes[1:])
        assert all(o.error == "cancelled before build" for o in outcomes[1:])
        assert backend.touched == {"a"}

    def test_interrupt_while_submitting_still_stops(self, machines_for, monkeypatch):
        class InterruptedPool(ThreadPoolExecutor):
            submitted = 0
            interrupted = False

            def submit(self, fn, *args, **kwargs):
                if InterruptedPool.submitted == 1 and not InterruptedPool.interrupted:
                    InterruptedPool.interrupted = True
                    raise KeyboardInterrupt
                InterruptedPool.submitted += 1
                return super().submit(fn, *args, **kwargs)

        monkeypatch.setattr(scheduler_module, "ThreadPoolExecutor", InterruptedPool)
        backend = RecordingBackend()
        scheduler = Scheduler(parallel=1)
        outcomes = scheduler.run(machines_for(backend, scheduler))
        assert scheduler.stop.is_set()
        assert [o.target for o in outcomes] == list(NAMES)
        assert all(o.error == "cancelled before build" for o in outcomes[1:])
        assert backend.touched <= {"a"}

    def test_external_stop_is_shared(self):
        stop = threading.Event()
        scheduler = Scheduler(parallel=2, stop=stop)
        scheduler.cancel()
        assert stop.is_set()

    def test_no_machines(self):
        assert Scheduler(parallel=2).run([]) == []
