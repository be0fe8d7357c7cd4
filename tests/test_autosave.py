from autosave import Debouncer


class FakeTimer:
    created = []

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.cancelled = False
        self.started = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.fn()


def test_only_last_call_runs():
    FakeTimer.created = []
    saved = []
    d = Debouncer(saved.append, delay=0.5, timer_factory=FakeTimer)
    d.schedule({"sport": [10]})
    d.schedule({"sport": [20]})
    first, second = FakeTimer.created
    assert first.cancelled and not second.cancelled
    assert second.delay == 0.5
    first.fire()
    second.fire()
    assert saved == [{"sport": [20]}]
    assert not d.pending


def test_flush_runs_immediately():
    FakeTimer.created = []
    saved = []
    d = Debouncer(saved.append, timer_factory=FakeTimer)
    d.schedule("x")
    d.flush()
    assert saved == ["x"]
    assert FakeTimer.created[0].cancelled


def test_cancel_drops_pending():
    FakeTimer.created = []
    saved = []
    d = Debouncer(saved.append, timer_factory=FakeTimer)
    d.schedule("x")
    d.cancel()
    d.flush()
    assert saved == []


def test_failed_save_reaches_on_error():
    FakeTimer.created = []
    errors = []

    def fail(_):
        raise OSError("disk full")

    d = Debouncer(fail, timer_factory=FakeTimer, on_error=errors.append)
    d.schedule("x")
    FakeTimer.created[0].fire()
    assert not d.pending
    assert len(errors) == 1
    assert isinstance(errors[0], OSError)


def test_replaced_timer_firing_late_does_nothing():
    FakeTimer.created = []
    saved = []
    d = Debouncer(saved.append, timer_factory=FakeTimer)
    d.schedule("old")
    d.schedule("new")
    first, second = FakeTimer.created
    # the first timer was already running when it got cancelled
    first.fn()
    assert saved == []
    assert d.pending
    second.fire()
    assert saved == ["new"]
