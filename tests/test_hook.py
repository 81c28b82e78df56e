import random

import pytest

from chaosblade_operator.fault import FaultStore, InjectMessage
from chaosblade_operator.hook import ChaosbladeHook, probability, random_errno


class FixedRandom:
    def __init__(self, value):
        self.value = value
        self.calls = []

    def randrange(self, stop):
        self.calls.append(stop)
        return self.value


def make_hook(mount_point="/mnt", rng=None, **fault):
    store = FaultStore()
    if fault:
        store.inject(InjectMessage(**fault))
    sleeps = []
    hook = ChaosbladeHook(mount_point, store, rng=rng, sleep=sleeps.append)
    return hook, store, sleeps


def test_errno_is_raised_for_matching_method():
    hook, _, _ = make_hook(methods=["read"], errno=28)
    with pytest.raises(OSError) as info:
        hook.inject_fault("file.txt", "read")
    assert info.value.errno == 28


def test_other_method_is_not_affected():
    hook, _, sleeps = make_hook(methods=["read"], errno=28, delay=100)
    hook.inject_fault("file.txt", "write")
    assert sleeps == []


def test_path_rule_limits_fault():
    hook, _, _ = make_hook(methods=["read"], errno=5, path="/mnt/data")
    with pytest.raises(OSError) as info:
        hook.pre("read", "data/x.log")
    assert info.value.errno == 5
    hook.pre("read", "other/x.log")
    assert hook.store.get("read").path == "/mnt/data"


def test_absolute_relative_path_is_joined_under_mount_point():
    hook, _, _ = make_hook(methods=["open"], errno=5, path="/mnt/data")
    with pytest.raises(OSError) as info:
        hook.pre("open", "/data/file")
    assert info.value.errno == 5


def test_delay_without_error():
    hook, _, sleeps = make_hook(methods=["write"], delay=1000)
    hook.pre("write", "a", b"buf", 0)
    assert sleeps == [1.0]


def test_percent_uses_probability():
    hook, _, _ = make_hook(rng=FixedRandom(60), methods=["read"], errno=5, percent=50)
    hook.inject_fault("a", "read")
    assert hook.rng.calls == [99]

    hook2, _, _ = make_hook(rng=FixedRandom(10), methods=["read"], errno=5, percent=50)
    with pytest.raises(OSError) as info:
        hook2.inject_fault("a", "read")
    assert info.value.errno == 5


def test_errno_has_priority_over_random():
    hook, _, _ = make_hook(rng=random.Random(1), methods=["read"], errno=28, random=True)
    with pytest.raises(OSError) as info:
        hook.inject_fault("a", "read")
    assert info.value.errno == 28


def test_random_errno_in_range_when_requested():
    hook, _, _ = make_hook(rng=random.Random(3), methods=["mkdir"], random=True)
    with pytest.raises(OSError) as info:
        hook.pre("mkdir", "dir", 0o755)
    assert 0x7 <= info.value.errno < 0x36


def test_random_errno_range():
    rng = random.Random(42)
    values = {random_errno(rng) for _ in range(2000)}
    assert min(values) >= 0x7
    assert max(values) < 0x36


def test_probability_bounds():
    assert probability(0, FixedRandom(0)) is False
    assert probability(100, FixedRandom(98)) is True
    assert probability(50, FixedRandom(50)) is False


def test_rename_checks_second_path():
    hook, _, _ = make_hook(methods=["rename"], errno=13, path="/mnt/b")
    with pytest.raises(OSError) as info:
        hook.pre("rename", "a", "b")
    assert info.value.errno == 13
    assert info.value.filename == "b"


def test_pre_release_ignores_error_but_delays():
    hook, _, sleeps = make_hook(methods=["release"], errno=5, delay=200)
    assert hook.pre_release("a") is None
    assert sleeps == [0.2]


def test_unknown_method_rejected():
    hook, _, _ = make_hook()
    with pytest.raises(ValueError):
        hook.pre("teleport", "a")


def test_missing_second_path_rejected():
    hook, _, _ = make_hook()
    with pytest.raises(TypeError):
        hook.pre("link", "a")


def test_recover_clears_faults():
    hook, store, sleeps = make_hook(methods=["read"], errno=5, delay=10)
    store.recover()
    hook.pre("read", "a", 10, 0)
    assert sleeps == []
    assert store.get("read") is None