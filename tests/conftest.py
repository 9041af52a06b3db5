import io
import zipfile

import pytest

from db import get_session
from main import create_app
from schema.cad_types import FIELD_CATEGORY, parse_field
from services.asset_store import get_store
from services.reference_index import ReferenceIndex


@pytest.fixture
def app(tmp_path):
    """Flask app on a temporary SQLite file and library directory."""
    app = create_app(
        db_url=f"sqlite:///{tmp_path / 'test.sqlite'}",
        library_dir=tmp_path / "library",
    )
    app.config["TESTING"] = True
    yield app


@pytest.fixture
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture
def store(app):
    return get_store()


@pytest.fixture
def session(app):
    s = get_session()
    yield s
    s.close()


@pytest.fixture
def refs(app):
    """Read a component's references through a fresh session."""
    def _refs(component_id):
        s = get_session()
        try:
            return ReferenceIndex.list_references(s, component_id)
        finally:
            s.close()
    return _refs


@pytest.fixture
def add_ref(app):
    """Insert a reference directly, without checking the store."""
    def _add(component_id, field, filename):
        s = get_session()
        try:
            ReferenceIndex.add_reference(s, component_id, field, filename)
            s.commit()
        finally:
            s.close()
    return _add


@pytest.fixture
def linked_file(store, add_ref):
    """Store a file and reference it from each given component."""
    def _linked(field, filename, components=(), data=b"cad-bytes"):
        field = parse_field(field)
        store.put(FIELD_CATEGORY[field], filename, data)
        for cid in components:
            add_ref(cid, field, filename)
    return _linked


@pytest.fixture
def make_zip():
    """Build an in-memory ZIP from {member name: bytes}."""
    def _make(members: dict) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for name, data in members.items():
                zf.writestr(name, data)
        return buf.getvalue()
    return _make
