import pytest

from tarsrpc.adapter import AdapterHealth, HealthPolicy


class FakeClock:
    def __init__(self, now=1000):
        self.now = now

    def __call__(self):
        return self.now


POLICY = HealthPolicy(
    fail_interval=5, fail_n=3, check_time=60, over_n=2, fail_ratio=0.5, try_time_interval=30
)


def make(clock, reconnect=None):
    health = AdapterHealth(policy=POLICY, reconnect=reconnect, clock=clock)
    health.reset()
    health.last_success_time = clock.now
    return health


def test_counters_track_sends_and_results():
    clock = FakeClock()
    health = make(clock)
    health.send_add()
    health.send_add()
    health.fail_add()
    health.fail_add()
    assert health.send_count == 2
    assert health.fail_count == 2
    assert health.last_fail_count == 2
    health.success_add()
    assert health.success_count == 1
    assert health.last_fail_count == 0
    assert health.fail_count == 2


def test_healthy_endpoint_stays_active():
    clock = FakeClock()
    health = make(clock)
    assert health.check_active() == (False, False)
    assert health.status is True


def test_consecutive_failures_block_after_interval():
    clock = FakeClock()
    health = make(clock)
    for _ in range(POLICY.fail_n):
        health.fail_add()
    assert health.check_active() == (False, False)
    clock.now += POLICY.fail_interval
    assert health.check_active() == (True, False)
    assert health.status is False
    assert health.last_block_time == clock.now


def test_fail_ratio_blocks_at_check_time():
    clock = FakeClock()
    health = make(clock)
    for _ in range(4):
        health.send_add()
    health.fail_add()
    health.fail_add()
    health.success_add()
    clock.now += POLICY.check_time
    assert health.check_active() == (True, False)
    assert health.status is False


def test_low_fail_ratio_only_moves_check_time():
    clock = FakeClock()
    health = make(clock)
    for _ in range(10):
        health.send_add()
    health.fail_add()
    health.fail_add()
    health.success_add()
    clock.now += POLICY.check_time
    assert health.check_active() == (False, False)
    assert health.status is True
    assert health.last_check_time == clock.now


def test_blocked_endpoint_probed_after_retry_interval():
    clock = FakeClock()
    calls = []
    health = make(clock, reconnect=lambda: calls.append(clock.now))
    health.status = False
    health.last_block_time = clock.now
    assert health.check_active() == (False, False)
    clock.now += POLICY.try_time_interval
    assert health.check_active() == (False, True)
    assert calls == [clock.now]
    assert health.last_block_time == clock.now


def test_failed_reconnect_keeps_blocked():
    clock = FakeClock()

    def fail():
        raise OSError("refused")

    health = make(clock, reconnect=fail)
    health.status = False
    health.last_block_time = clock.now - POLICY.try_time_interval
    assert health.check_active() == (False, False)
    assert health.status is False


def test_closed_endpoint_never_checked():
    clock = FakeClock()
    health = make(clock)
    for _ in range(POLICY.fail_n):
        health.fail_add()
    clock.now += 100
    health.close()
    assert health.check_active() == (False, False)
    assert health.status is True


def test_reset_restores_health():
    clock = FakeClock()
    health = make(clock)
    health.send_add()
    health.fail_add()
    health.status = False
    clock.now += 7
    health.reset()
    assert health.status is True
    assert (health.send_count, health.fail_count, health.last_fail_count) == (0, 0, 0)
    assert health.last_check_time == clock.now
    assert health.last_keep_alive_time == clock.now


@pytest.mark.parametrize("fails", [0, 1])
def test_below_over_n_not_blocked(fails):
    clock = FakeClock()
    health = make(clock)
    health.send_add()
    for _ in range(fails):
        health.fail_add()
    health.success_add()
    clock.now += POLICY.check_time
    assert health.check_active() == (False, False)