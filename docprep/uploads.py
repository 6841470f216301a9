import hashlib
import logging
import os
import time

from .conversion import mime_type_for, needs_conversion
from .errors import InvalidDocument
from .models import UploadResult
from .pdf import is_pdf

logger = logging.getLogger(__name__)


def split_extension(filename):
    # ".pdf" is a pdf with an empty stem, not a dotfile without extension
    stem, dot, ext = os.path.basename(filename).rpartition(".")
    if not dot:
        return ext, ""
    return stem, ext.lower()


def unique_object_name(filename, now_ms=None):
    """``<sha256>.pdf`` derived from the upload time and the original file name."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    stem, _ = split_extension(filename)
    digest = hashlib.sha256(f"{now_ms}-{stem}.pdf".encode("utf-8")).hexdigest()
    return f"{digest}.pdf"


class UploadService:
    """Turn an uploaded file into a stored PDF and a template row."""

    def __init__(self, db, store, converter):
        self.db = db
        self.store = store
        self.converter = converter

    def process(self, filename, data):
        _, extension = split_extension(filename)
        object_name = unique_object_name(filename)

        if needs_conversion(extension):
            # Raises UnsupportedFileType before anything goes over the network
            mime_type_for(extension)
            logger.info(f"Converting {filename} (.{extension}) to PDF")
            pdf_bytes = self.converter.convert(data, extension)
        else:
            if not is_pdf(data):
                raise InvalidDocument(f"{filename} is not a PDF document")
            pdf_bytes = data

        file_id = self.store.upload(object_name, pdf_bytes, content_type="application/pdf")
        # A failed insert leaves the stored object in place.
        template = self.db.insert_template(file_id)
        logger.info(f"Template {template.id} created for {filename} -> {file_id}")

        return UploadResult(filename=object_name, id=template.id, file_id=file_id)
