import threading

import pytest

from hovenier.core.errors import PersistenceError
from hovenier.workflow.autosave import AutoSaveCoordinator, SaveState


class Recorder:
    def __init__(self):
        self.saved = []
        self.fail = None

    def __call__(self, draft):
        if self.fail is not None:
            raise self.fail
        self.saved.append(draft)


@pytest.fixture
def persist():
    return Recorder()


@pytest.fixture
def autosave(persist, scheduler, clock):
    return AutoSaveCoordinator(persist, debounce_ms=2000, scheduler=scheduler, clock=clock, initial={"gras": {}})


def test_starts_clean(autosave):
    assert autosave.state is SaveState.CLEAN
    assert not autosave.is_dirty
    assert autosave.last_saved_at is None


def test_debounce_collapses_edits(autosave, persist, scheduler, clock):
    autosave.update({"oppervlakte": 10})
    autosave.update({"oppervlakte": 20})
    autosave.update({"type": "zaaien"})
    assert autosave.state is SaveState.DIRTY
    assert len(scheduler.pending) == 1
    assert scheduler.pending[0].delay_ms == 2000

    scheduler.fire()
    assert persist.saved == [{"gras": {}, "oppervlakte": 20, "type": "zaaien"}]
    assert autosave.state is SaveState.CLEAN
    assert autosave.last_saved_at == clock.now


def test_failure_keeps_draft_dirty(autosave, persist, scheduler):
    persist.fail = PersistenceError("db weg")
    autosave.update({"oppervlakte": 10})
    scheduler.fire()

    assert autosave.state is SaveState.ERROR
    assert autosave.is_dirty
    assert isinstance(autosave.error, PersistenceError)
    assert autosave.draft["oppervlakte"] == 10

    persist.fail = None
    autosave.update({"oppervlakte": 11})
    scheduler.fire()
    assert autosave.state is SaveState.CLEAN
    assert autosave.error is None
    assert persist.saved[-1]["oppervlakte"] == 11


def test_save_now_flushes_and_cancels_timer(autosave, persist, scheduler):
    autosave.update({"oppervlakte": 10})
    autosave.save_now()
    assert persist.saved == [{"gras": {}, "oppervlakte": 10}]
    assert scheduler.pending == []
    assert autosave.state is SaveState.CLEAN


def test_save_now_without_changes_is_a_noop(autosave, persist):
    autosave.save_now()
    assert persist.saved == []


def test_save_now_raises_on_failure(autosave, persist):
    persist.fail = RuntimeError("disk vol")
    autosave.update({"oppervlakte": 10})
    with pytest.raises(PersistenceError) as exc:
        autosave.save_now()
    assert exc.value.code == "AUTOSAVE_FAILED"
    assert autosave.is_dirty


def test_edits_during_commit_are_requeued(scheduler, clock):
    saved = []
    entered = threading.Event()
    release = threading.Event()

    def slow_persist(draft):
        saved.append(draft)
        if len(saved) == 1:
            entered.set()
            release.wait(5)

    autosave = AutoSaveCoordinator(slow_persist, scheduler=scheduler, clock=clock)
    autosave.update({"a": 1})
    worker = threading.Thread(target=scheduler.fire)
    worker.start()
    assert entered.wait(5)
    assert autosave.state is SaveState.SAVING

    # tijdens de commit: nieuwe wijziging plant een nieuwe save
    autosave.update({"b": 2})
    release.set()
    worker.join(5)

    assert autosave.is_dirty
    assert scheduler.pending
    scheduler.fire()
    assert saved == [{"a": 1}, {"a": 1, "b": 2}]
    assert autosave.state is SaveState.CLEAN


def test_close_cancels_and_blocks_updates(autosave, persist, scheduler):
    autosave.update({"oppervlakte": 10})
    autosave.close()
    assert scheduler.pending == []
    with pytest.raises(RuntimeError):
        autosave.update({"oppervlakte": 11})
    assert persist.saved == []


def test_negative_debounce_is_rejected(persist):
    with pytest.raises(ValueError):
        AutoSaveCoordinator(persist, debounce_ms=-1)
