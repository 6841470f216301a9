import fitz  # PyMuPDF
import pytest

from docprep import create_app
from docprep.db import Database
from docprep.storage import ObjectStore


def make_pdf(pages=((612, 792),)):
    doc = fitz.open()
    for width, height in pages:
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), "Agreement", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


class FakeConverter:
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else make_pdf()
        self.error = error
        self.calls = []

    def convert(self, data, extension):
        self.calls.append((data, extension))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    database.init_db()
    return database


@pytest.fixture
def store(tmp_path):
    return ObjectStore(str(tmp_path / "storage"), bucket="templates")


@pytest.fixture
def converter():
    return FakeConverter()


@pytest.fixture
def app(tmp_path, db, store, converter):
    app = create_app(
        config={"TESTING": True, "PREVIEW_FOLDER": str(tmp_path / "previews")},
        db=db,
        store=store,
        converter=converter,
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def pdf_bytes():
    return make_pdf()


@pytest.fixture
def template(db, store, pdf_bytes):
    file_id = store.upload("sample.pdf", pdf_bytes)
    return db.insert_template(file_id)
