import threading

import pytest

from archive_engine import ArchiveError, expand_archive
from archive_engine.classifier import SKIP_HIDDEN, SKIP_METADATA, SKIP_NESTED, SKIP_UNKNOWN
from schema.cad_types import CadField


class CancelAfter:
    """Stand-in for threading.Event that reports set after n checks."""

    def __init__(self, n):
        self.n = n
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.n


def _accounted(report):
    return len(report.extracted) + len(report.skipped) + len(report.errors)


def test_footprint_and_unknown_member(store, refs, make_zip):
    data = make_zip({"lib/FOOT.kicad_mod": b"(footprint)", "readme.xyz": b"?"})

    report = expand_archive("C1", "lib.zip", data, store=store)

    assert report.total_members == 2
    assert [e["fileName"] for e in report.extracted] == ["FOOT.kicad_mod"]
    assert report.skipped == [{"member": "readme.xyz", "reason": SKIP_UNKNOWN}]
    assert report.errors == []
    assert store.get("footprint", "FOOT.kicad_mod") == b"(footprint)"
    assert refs("C1")[CadField.PCB_FOOTPRINT] == ["FOOT.kicad_mod"]


def test_counts_add_up(store, make_zip):
    members = {f"fp/F{i}.kicad_mod": b"f%d" % i for i in range(3)}
    members.update({f"docs/n{i}.txt": b"n" for i in range(2)})
    members["fp/"] = b""                     # directory entry, not a member

    report = expand_archive("C1", "mixed.zip", make_zip(members), store=store)

    assert len(report.extracted) == 3
    assert len(report.skipped) == 2
    assert report.total_members == 5
    assert _accounted(report) == report.total_members


def test_skip_rules(store, make_zip):
    data = make_zip({
        "__MACOSX/._A.kicad_mod": b"meta",
        "lib/.hidden.kicad_mod": b"h",
        "inner.zip": b"PK",
    })

    report = expand_archive("C1", "skip.zip", data, store=store)

    reasons = {s["member"]: s["reason"] for s in report.skipped}
    assert reasons == {
        "__MACOSX/._A.kicad_mod": SKIP_METADATA,
        "lib/.hidden.kicad_mod": SKIP_HIDDEN,
        "inner.zip": SKIP_NESTED,
    }
    assert report.extracted == []
    assert store.list("footprint") == []


def test_conflicting_bytes_keep_existing(store, refs, make_zip):
    store.put("footprint", "FOOT.kicad_mod", b"original")

    report = expand_archive("C1", "lib.zip", make_zip({"FOOT.kicad_mod": b"different"}), store=store)

    assert report.conflicts == [
        {"member": "FOOT.kicad_mod", "fileName": "FOOT.kicad_mod", "category": "footprint"},
    ]
    assert report.errors[0]["kind"] == "conflict"
    assert report.extracted == []
    assert _accounted(report) == report.total_members
    assert store.get("footprint", "FOOT.kicad_mod") == b"original"
    assert refs("C1")[CadField.PCB_FOOTPRINT] == []


def test_identical_bytes_are_reused(store, refs, make_zip):
    store.put("model", "M.step", b"same")

    report = expand_archive("C2", "lib.zip", make_zip({"M.step": b"same"}), store=store)

    assert report.extracted[0]["reused"] is True
    assert report.conflicts == []
    assert refs("C2")[CadField.STEP_MODEL] == ["M.step"]


def test_single_valued_field_takes_first_member(store, refs, make_zip):
    data = make_zip({"A.kicad_sym": b"a", "B.lib": b"b"})

    report = expand_archive("C1", "syms.zip", data, store=store)

    assert [e["fileName"] for e in report.extracted] == ["A.kicad_sym"]
    assert report.errors == [{
        "member": "B.lib",
        "kind": "CardinalityViolation",
        "reason": report.errors[0]["reason"],
    }]
    assert refs("C1")[CadField.SCHEMATIC] == ["A.kicad_sym"]
    # The unlinked member stays in the store
    assert store.exists("symbol", "B.lib")


def test_oversize_member(store, make_zip):
    data = make_zip({"BIG.step": b"x" * 64, "small.step": b"x"})

    report = expand_archive("C1", "big.zip", data, store=store, max_member_bytes=16)

    assert report.errors[0]["member"] == "BIG.step"
    assert report.errors[0]["kind"] == "too_large"
    assert not store.exists("model", "BIG.step")
    assert [e["fileName"] for e in report.extracted] == ["small.step"]


def test_member_paths_never_escape_category(store, make_zip):
    report = expand_archive("C1", "evil.zip", make_zip({"../../evil.kicad_mod": b"e"}), store=store)

    assert report.extracted[0]["fileName"] == "evil.kicad_mod"
    assert store.list("footprint") == ["evil.kicad_mod"]
    assert not (store.root.parent / "evil.kicad_mod").exists()


def test_cancel_before_start(store, make_zip):
    event = threading.Event()
    event.set()

    report = expand_archive("C1", "lib.zip", make_zip({"F.kicad_mod": b"f"}), store=store, cancel=event)

    assert report.cancelled is True
    assert report.total_members == 0
    assert store.list("footprint") == []


def test_cancel_midway(store, make_zip):
    data = make_zip({"A.kicad_mod": b"a", "B.kicad_mod": b"b", "C.kicad_mod": b"c"})

    report = expand_archive("C1", "lib.zip", data, store=store, cancel=CancelAfter(1))

    assert report.cancelled is True
    assert report.total_members == 1
    assert _accounted(report) == 1
    assert store.list("footprint") == ["A.kicad_mod"]


def test_unreadable_archive(store):
    with pytest.raises(ArchiveError):
        expand_archive("C1", "broken.zip", b"not a zip", store=store)
