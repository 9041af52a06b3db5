import threading

from services.key_locks import KeyLocks, field_key, file_key


def test_keys_are_dropped_after_use():
    locks = KeyLocks()
    with locks.hold(file_key("footprint", "A.kicad_mod"), field_key("C1", "pcb_footprint")):
        assert len(locks.active_keys()) == 2
    assert locks.active_keys() == []


def test_same_key_is_serialised():
    locks = KeyLocks()
    key = file_key("model", "M.step")
    entered = threading.Event()

    def contender():
        with locks.hold(key):
            entered.set()

    with locks.hold(key):
        t = threading.Thread(target=contender)
        t.start()
        assert not entered.wait(0.2)
    t.join(timeout=5)
    assert entered.is_set()


def test_different_keys_do_not_block():
    locks = KeyLocks()
    entered = threading.Event()

    def other():
        with locks.hold(file_key("model", "B.step")):
            entered.set()

    with locks.hold(file_key("model", "A.step")):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(5)
    t.join(timeout=5)


def test_overlapping_sets_do_not_deadlock():
    locks = KeyLocks()
    a = file_key("pad", "A.pad")
    b = file_key("pad", "B.pad")

    def worker(keys):
        for _ in range(200):
            with locks.hold(*keys):
                pass

    threads = [threading.Thread(target=worker, args=((a, b),)),
               threading.Thread(target=worker, args=((b, a),))]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert not any(t.is_alive() for t in threads)
    assert locks.active_keys() == []
