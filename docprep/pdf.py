import io
import logging
import os

import fitz  # PyMuPDF
from pdf2image import convert_from_bytes

from .coords import PageSize

logger = logging.getLogger(__name__)


def page_sizes(pdf_bytes):
    """Native size of every page in PDF points, keyed by 1-based page number."""
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        # page.rect already accounts for /Rotate
        return {i + 1: PageSize(page.rect.width, page.rect.height) for i, page in enumerate(doc)}
    finally:
        doc.close()


def is_pdf(data):
    return data[:5] == b"%PDF-"


def render_page_preview(pdf_bytes, page_number, preview_path=None, dpi=72, poppler_path=None):
    """Render one page to PNG bytes, reusing ``preview_path`` when it already exists."""
    if preview_path and os.path.exists(preview_path):
        logger.info(f"Preview already exists at {preview_path}")
        with open(preview_path, "rb") as fh:
            return fh.read()

    logger.info(f"Generating preview for page {page_number}")
    images = convert_from_bytes(
        pdf_bytes,
        dpi=dpi,
        first_page=page_number,
        last_page=page_number,
        poppler_path=poppler_path,
    )
    if not images:
        raise ValueError(f"Page {page_number} could not be rendered")

    buf = io.BytesIO()
    images[0].save(buf, "PNG")
    png = buf.getvalue()

    if preview_path:
        os.makedirs(os.path.dirname(preview_path) or ".", exist_ok=True)
        with open(preview_path, "wb") as fh:
            fh.write(png)
        logger.info(f"Preview saved at {preview_path}")
    return png
