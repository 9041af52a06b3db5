import threading

from schema.cad_types import CadField
from services.upload_service import UploadedFile, upload_files


def test_regular_file_is_stored_and_linked(store, refs):
    results = upload_files("C1", [UploadedFile("my part.kicad_mod", b"(fp)")])

    assert results[0].to_dict() == {
        "filename": "my_part.kicad_mod",
        "type": "regular",
        "category": "footprint",
        "reused": False,
    }
    assert store.get("footprint", "my_part.kicad_mod") == b"(fp)"
    assert refs("C1")[CadField.PCB_FOOTPRINT] == ["my_part.kicad_mod"]


def test_unknown_extension_is_reported(store):
    result = upload_files("C1", [UploadedFile("board.gbr", b"G04")])[0]

    assert result.error == "Unknown file type"
    assert ".kicad_mod" in result.supported
    assert store.list("footprint") == []


def test_one_bad_file_does_not_stop_others(store, refs):
    results = upload_files("C1", [
        UploadedFile("x.gbr", b"?"),
        UploadedFile("M.step", b"step"),
    ])

    assert results[0].error
    assert results[1].error is None
    assert refs("C1")[CadField.STEP_MODEL] == ["M.step"]


def test_same_bytes_for_another_component_are_reused(store, refs):
    upload_files("A", [UploadedFile("P.pad", b"pad")])
    result = upload_files("B", [UploadedFile("P.pad", b"pad")])[0]

    assert result.reused is True
    assert refs("B")[CadField.PAD_FILE] == ["P.pad"]


def test_different_bytes_under_taken_name(store):
    upload_files("A", [UploadedFile("P.pad", b"pad")])
    result = upload_files("B", [UploadedFile("P.pad", b"other")])[0]

    assert "already exists" in result.error
    assert store.get("pad", "P.pad") == b"pad"


def test_zip_is_expanded(store, refs, make_zip):
    data = make_zip({"FOOT.kicad_mod": b"f", "notes.xyz": b"n"})

    result = upload_files("C1", [UploadedFile("vendor.zip", data)])[0]

    assert result.type == "archive"
    assert result.files_extracted == 1
    assert result.report.total_members == 2
    assert result.error is None
    assert refs("C1")[CadField.PCB_FOOTPRINT] == ["FOOT.kicad_mod"]
    assert store.list("archive") == []


def test_unreadable_zip_is_kept_as_archive(store):
    result = upload_files("C1", [UploadedFile("broken.zip", b"not a zip")])[0]

    assert result.type == "archive"
    assert result.category.value == "archive"
    assert result.error is None
    assert "stored as-is" in result.note
    assert store.get("archive", "broken.zip") == b"not a zip"


def test_zip_without_cad_files_is_kept_as_archive(store, make_zip):
    data = make_zip({"readme.txt": b"hello"})

    result = upload_files("C1", [UploadedFile("docs.zip", data)])[0]

    assert result.files_extracted == 0
    assert result.error is None
    assert "stored as-is" in result.to_dict()["note"]
    assert store.exists("archive", "docs.zip")


def test_cancelled_upload(store):
    cancel = threading.Event()
    cancel.set()

    results = upload_files("C1", [UploadedFile("A.step", b"a"), UploadedFile("B.pad", b"b")],
                           cancel=cancel)

    assert [r.error for r in results] == ["cancelled", "cancelled"]
    assert store.list("model") == []


def test_upload_and_archive_member_get_the_same_name(store, make_zip):
    direct = upload_files("A", [UploadedFile("My Foot.kicad_mod", b"f")])[0]
    report = upload_files("B", [UploadedFile("lib.zip", make_zip({"lib/My Foot.kicad_mod": b"f"}))])[0].report

    assert direct.filename == "My_Foot.kicad_mod"
    assert report.extracted[0]["fileName"] == "My_Foot.kicad_mod"
    assert report.extracted[0]["reused"] is True
    assert store.list("footprint") == ["My_Foot.kicad_mod"]


def test_non_ascii_name_keeps_its_extension(store, refs):
    result = upload_files("C1", [UploadedFile("电阻.kicad_mod", b"(fp)")])[0]

    assert result.error is None
    assert result.filename == "电阻.kicad_mod"
    assert refs("C1")[CadField.PCB_FOOTPRINT] == ["电阻.kicad_mod"]


def test_directory_part_and_dot_names(store):
    results = upload_files("C1", [
        UploadedFile("C:\\libs\\P.pad", b"p"),
        UploadedFile(".hidden.pad", b"h"),
    ])

    assert results[0].filename == "P.pad"
    assert results[1].error == "Invalid filename"
    assert store.list("pad") == ["P.pad"]
