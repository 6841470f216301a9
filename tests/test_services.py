import hashlib
import os
import sqlite3

import pytest
import requests

from docprep.conversion import (
    AdobeConverter, SofficeConverter, build_converter, mime_type_for, needs_conversion,
)
from docprep.errors import ConversionError, InvalidDocument, StorageError, TemplateNotFound, UnsupportedFileType
from docprep.pdf import is_pdf, page_sizes
from docprep.uploads import UploadService, split_extension, unique_object_name
from tests.conftest import FakeConverter, make_pdf


# Object store

def test_store_refuses_to_overwrite(store):
    assert store.upload("a.pdf", b"one") == "a.pdf"
    with pytest.raises(StorageError):
        store.upload("a.pdf", b"two")
    assert store.read("a.pdf") == b"one"


@pytest.mark.parametrize("path", ["../escape.pdf", "nested/a.pdf", ""])
def test_store_rejects_paths_outside_bucket(store, path):
    with pytest.raises(StorageError):
        store.read(path)


def test_store_missing_object(store):
    with pytest.raises(StorageError):
        store.read("nope.pdf")


# Database

def test_template_roundtrip(db):
    template = db.insert_template("abc.pdf")
    assert db.get_template(template.id) == template
    with pytest.raises(TemplateNotFound):
        db.get_template("missing")


def test_upsert_is_one_transaction(db, template):
    rows = [
        {"type": "text", "page_number": 1, "x": 1, "y": 2, "width": 3, "height": 4,
         "template_id": template.id, "required": False},
        {"type": "text", "page_number": 1, "x": 1, "y": 2, "width": 3, "height": 4,
         "template_id": template.id, "required": False},
    ]
    rows[1]["type"] = None  # violates NOT NULL on the second row
    with pytest.raises(sqlite3.IntegrityError):
        db.upsert_annotations(rows)
    assert db.list_annotations(template.id) == []


def test_upsert_never_deletes_rows(db, template):
    row = {"type": "date", "page_number": 1, "x": 1, "y": 2, "width": 3, "height": 4,
           "template_id": template.id}
    [first] = db.upsert_annotations([row])
    db.upsert_annotations([dict(row, x=9)])
    stored = db.list_annotations(template.id)
    assert [a.id for a in stored][0] == first.id
    assert len(stored) == 2


# Uploads

def test_unique_object_name_is_sha256_of_time_and_stem():
    expected = hashlib.sha256(b"1700000000000-contract.pdf").hexdigest() + ".pdf"
    assert unique_object_name("contract.docx", now_ms=1700000000000) == expected


@pytest.mark.parametrize("filename, expected", [
    ("contract.PDF", ("contract", "pdf")),
    (".pdf", ("", "pdf")),
    ("archive.tar.gz", ("archive.tar", "gz")),
    ("README", ("README", "")),
    ("scans/page.docx", ("page", "docx")),
])
def test_split_extension(filename, expected):
    assert split_extension(filename) == expected


def test_pdf_named_upload_without_pdf_data(store):
    service = UploadService(None, store, FakeConverter())
    with pytest.raises(InvalidDocument):
        service.process("contract.pdf", b"%PD")
    assert os.listdir(store.bucket_dir) == []


def test_orphaned_object_when_template_insert_fails(store):
    class BrokenDb:
        def insert_template(self, file_id):
            raise sqlite3.OperationalError("database is locked")

    service = UploadService(BrokenDb(), store, FakeConverter())
    with pytest.raises(sqlite3.OperationalError):
        service.process("contract.pdf", make_pdf())
    # The stored PDF is not cleaned up.
    assert len(os.listdir(store.bucket_dir)) == 1


# PDF inspection

def test_page_sizes_are_one_based():
    sizes = page_sizes(make_pdf([(612, 792), (595, 842)]))
    assert sizes[1] == (612, 792)
    assert sizes[2] == (595, 842)
    assert is_pdf(make_pdf())
    assert not is_pdf(b"PK\x03\x04")


# Conversion

@pytest.mark.parametrize("ext", ["doc", "DOCX", "ppt", "pptx", "xls", "xlsx", "txt", "rtf", "html", "htm"])
def test_supported_extensions(ext):
    assert needs_conversion(ext)
    assert mime_type_for(ext)


def test_pdf_needs_no_conversion():
    assert not needs_conversion("PDF")
    with pytest.raises(UnsupportedFileType):
        mime_type_for("zip")


class FakeResponse:
    def __init__(self, json_body=None, headers=None, content=b"", status_code=200):
        self._json = json_body
        self.headers = headers or {}
        self.content = content
        self.status_code = status_code

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, poll_statuses=("in progress", "done"), token_status=200):
        self.poll_statuses = list(poll_statuses)
        self.token_status = token_status
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append(("POST", url))
        if url.endswith("/token"):
            return FakeResponse({"access_token": "tok"}, status_code=self.token_status)
        if url.endswith("/assets"):
            return FakeResponse({"uploadUri": "https://upload.example/asset", "assetID": "asset-1"})
        if url.endswith("/operation/createpdf"):
            assert kwargs["json"] == {"assetID": "asset-1"}
            return FakeResponse(headers={"location": "https://poll.example/job"}, status_code=201)
        raise AssertionError(url)

    def put(self, url, **kwargs):
        self.calls.append(("PUT", url))
        return FakeResponse()

    def get(self, url, **kwargs):
        self.calls.append(("GET", url))
        if url == "https://poll.example/job":
            status = self.poll_statuses.pop(0)
            body = {"status": status}
            if status == "done":
                body["asset"] = {"downloadUri": "https://download.example/result"}
            return FakeResponse(body)
        if url == "https://download.example/result":
            return FakeResponse(content=b"%PDF-1.7 converted")
        raise AssertionError(url)


def test_adobe_converter_full_job():
    session = FakeSession()
    converter = AdobeConverter("id", "secret", session=session, poll_interval=0)
    assert converter.convert(b"doc bytes", "docx") == b"%PDF-1.7 converted"
    assert [c[0] for c in session.calls] == ["POST", "POST", "PUT", "POST", "GET", "GET", "GET"]


def test_adobe_converter_job_failure():
    converter = AdobeConverter("id", "secret", session=FakeSession(poll_statuses=["failed"]),
                               poll_interval=0)
    with pytest.raises(ConversionError):
        converter.convert(b"doc bytes", "docx")


def test_adobe_converter_http_error_is_not_retried():
    session = FakeSession(token_status=401)
    converter = AdobeConverter("id", "secret", session=session, poll_interval=0)
    with pytest.raises(ConversionError):
        converter.convert(b"doc bytes", "docx")
    assert len(session.calls) == 1


def test_adobe_converter_checks_extension_before_network():
    session = FakeSession()
    with pytest.raises(UnsupportedFileType):
        AdobeConverter("id", "secret", session=session).convert(b"x", "exe")
    assert session.calls == []


def test_adobe_converter_needs_credentials():
    with pytest.raises(ConversionError):
        AdobeConverter("", "", session=FakeSession()).convert(b"x", "txt")


def test_soffice_converter_without_binary():
    converter = SofficeConverter(binary=None)
    converter.binary = None
    with pytest.raises(ConversionError):
        converter.convert(b"x", "txt")


def test_build_converter_from_config():
    assert isinstance(build_converter({"CONVERTER": "soffice"}), SofficeConverter)
    assert isinstance(build_converter({"CONVERTER": "adobe"}), AdobeConverter)
    with pytest.raises(ValueError):
        build_converter({"CONVERTER": "fax"})
