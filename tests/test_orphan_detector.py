import pytest

from services import link_manager
from services.errors import InvalidName
from services.file_coordinator import FileCoordinator
from services.orphan_detector import list_dangling, list_orphans


def test_orphans_are_stored_but_unreferenced(session, store, linked_file):
    linked_file("pcb_footprint", "USED.kicad_mod", ["A"])
    store.put("footprint", "ZETA.kicad_mod", b"z")
    store.put("footprint", "ALPHA.kicad_mod", b"a")

    orphans = list_orphans(session, "footprint", store)

    assert orphans == ["ALPHA.kicad_mod", "ZETA.kicad_mod"]
    assert "USED.kicad_mod" not in orphans


def test_unlink_creates_orphan(session, store, linked_file):
    linked_file("step_model", "M.step", ["A"])
    assert list_orphans(session, "step", store) == []

    link_manager.unlink("A", "step_model", "M.step")

    assert list_orphans(session, "model", store) == ["M.step"]
    assert store.exists("model", "M.step")


def test_dangling_references(session, store, add_ref, linked_file):
    linked_file("pad_file", "OK.pad", ["A"])
    add_ref("B", "pad_file", "GONE.pad")

    assert list_dangling(session, "pad", store) == [
        {"component_id": "B", "field": "pad_file", "file_name": "GONE.pad"},
    ]
    assert list_orphans(session, "pad", store) == []


def test_archives_are_always_orphans(session, store):
    store.put("archive", "vendor.zip", b"PK")
    assert list_orphans(session, "archive", store) == ["vendor.zip"]


def test_dot_names_cannot_enter_the_store(session, store, linked_file):
    linked_file("pcb_footprint", "FOOT.kicad_mod", ["A"])

    with pytest.raises(InvalidName):
        FileCoordinator(store=store).rename_physical("footprint", "FOOT.kicad_mod",
                                                     ".FOOT.kicad_mod")
    with pytest.raises(InvalidName):
        store.put("footprint", ".X.kicad_mod", b"x")

    assert store.list("footprint") == ["FOOT.kicad_mod"]
    assert list_orphans(session, "footprint", store) == []
    assert list_dangling(session, "footprint", store) == []


def test_every_stored_name_is_visible_to_the_scans(session, store, add_ref):
    store.put("footprint", "X.kicad_mod", b"x")
    add_ref("A", "pcb_footprint", "Y.kicad_mod")

    assert store.list("footprint") == ["X.kicad_mod"]
    assert list_orphans(session, "footprint", store) == ["X.kicad_mod"]
    assert list_dangling(session, "footprint", store) == [
        {"component_id": "A", "field": "pcb_footprint", "file_name": "Y.kicad_mod"},
    ]
