import pytest

from schema.cad_types import CadField, Category
from services.errors import CardinalityViolation, DuplicateReference, UnknownCategory
from services.reference_index import ReferenceIndex


def test_list_references_has_every_field(session):
    refs = ReferenceIndex.list_references(session, "C1")
    assert set(refs) == set(CadField)
    assert all(v == [] for v in refs.values())


def test_multi_valued_keeps_insertion_order(session):
    ReferenceIndex.add_reference(session, "C1", "pcb_footprint", "B.kicad_mod")
    ReferenceIndex.add_reference(session, "C1", "pcb_footprint", "A.kicad_mod")
    ReferenceIndex.add_reference(session, "C1", CadField.PAD_FILE, "P1.pad")
    session.commit()

    refs = ReferenceIndex.list_references(session, "C1")
    assert refs[CadField.PCB_FOOTPRINT] == ["B.kicad_mod", "A.kicad_mod"]
    assert refs[CadField.PAD_FILE] == ["P1.pad"]


def test_single_valued_occupied_always_fails(session):
    ReferenceIndex.add_reference(session, "C1", "schematic", "A.kicad_sym")
    session.commit()

    with pytest.raises(CardinalityViolation) as exc:
        ReferenceIndex.add_reference(session, "C1", "schematic", "B.kicad_sym")
    assert exc.value.component_id == "C1"
    assert exc.value.field == "schematic"

    # Same filename is still a cardinality violation
    with pytest.raises(CardinalityViolation):
        ReferenceIndex.add_reference(session, "C1", "schematic", "A.kicad_sym")


def test_duplicate_in_multi_valued_field(session):
    ReferenceIndex.add_reference(session, "C1", "pad_file", "P1.pad")
    with pytest.raises(DuplicateReference):
        ReferenceIndex.add_reference(session, "C1", "pad_file", "P1.pad")


def test_unknown_field(session):
    with pytest.raises(UnknownCategory):
        ReferenceIndex.add_reference(session, "C1", "gerber", "x.gbr")


def test_remove_reference_is_idempotent(session):
    ReferenceIndex.add_reference(session, "C1", "step_model", "M.step")
    session.commit()
    assert ReferenceIndex.remove_reference(session, "C1", "step_model", "M.step") is True
    assert ReferenceIndex.remove_reference(session, "C1", "step_model", "M.step") is False
    session.commit()
    assert ReferenceIndex.list_references(session, "C1")[CadField.STEP_MODEL] == []


def test_find_components_referencing(session):
    for cid in ("B", "A", "C"):
        ReferenceIndex.add_reference(session, cid, "pcb_footprint", "SHARED.kicad_mod")
    ReferenceIndex.add_reference(session, "D", "pcb_footprint", "OTHER.kicad_mod")
    session.commit()

    assert ReferenceIndex.find_components_referencing(
        session, "footprint", "SHARED.kicad_mod") == ["B", "A", "C"]
    assert ReferenceIndex.referenced_filenames(session, Category.FOOTPRINT) == {
        "SHARED.kicad_mod", "OTHER.kicad_mod"}
    assert ReferenceIndex.reference_counts(session, "footprint") == {
        (Category.FOOTPRINT, "SHARED.kicad_mod"): 3,
        (Category.FOOTPRINT, "OTHER.kicad_mod"): 1,
    }
    assert [r.to_dict() for r in ReferenceIndex.references_to(
        session, "footprint", "OTHER.kicad_mod")] == [
        {"component_id": "D", "field": "pcb_footprint", "file_name": "OTHER.kicad_mod"},
    ]


def test_rewrite_filename_subset(session):
    ReferenceIndex.add_reference(session, "A", "pad_file", "PAD1.pad")
    ReferenceIndex.add_reference(session, "B", "pad_file", "PAD1.pad")
    session.commit()

    updated = ReferenceIndex.rewrite_filename(session, "pad", "PAD1.pad", "PAD2.pad", ["A"])
    session.commit()

    assert updated == ["A"]
    assert ReferenceIndex.list_references(session, "A")[CadField.PAD_FILE] == ["PAD2.pad"]
    assert ReferenceIndex.list_references(session, "B")[CadField.PAD_FILE] == ["PAD1.pad"]
    assert ReferenceIndex.rewrite_filename(session, "pad", "PAD1.pad", "PAD2.pad", []) == []


def test_rewrite_filename_merges_existing_holder(session):
    ReferenceIndex.add_reference(session, "A", "pcb_footprint", "OLD.kicad_mod")
    ReferenceIndex.add_reference(session, "A", "pcb_footprint", "NEW.kicad_mod")
    session.commit()

    assert ReferenceIndex.rewrite_filename(
        session, "footprint", "OLD.kicad_mod", "NEW.kicad_mod") == ["A"]
    session.commit()
    assert ReferenceIndex.list_references(session, "A")[CadField.PCB_FOOTPRINT] == ["NEW.kicad_mod"]


def test_remove_all_references(session):
    ReferenceIndex.add_reference(session, "A", "step_model", "M.step")
    ReferenceIndex.add_reference(session, "B", "step_model", "M.step")
    session.commit()

    assert ReferenceIndex.remove_all_references(session, "model", "M.step") == ["A", "B"]
    session.commit()
    assert ReferenceIndex.find_components_referencing(session, "model", "M.step") == []


def test_components_sharing(session):
    ReferenceIndex.add_reference(session, "A", "pcb_footprint", "F.kicad_mod")
    ReferenceIndex.add_reference(session, "B", "pcb_footprint", "F.kicad_mod")
    ReferenceIndex.add_reference(session, "C", "step_model", "M.step")
    ReferenceIndex.add_reference(session, "A", "step_model", "M.step")
    session.commit()

    assert ReferenceIndex.components_sharing(session, "A") == [
        {"component_id": "B", "file_type": "footprint", "file_name": "F.kicad_mod"},
        {"component_id": "C", "file_type": "model", "file_name": "M.step"},
    ]
