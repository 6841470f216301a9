import io
import logging
import os

from flask import Blueprint, current_app, jsonify, request, send_file, url_for

from .editor import annotation_rows
from .errors import StorageError, TemplateNotFound
from .models import AnnotationArea
from .pdf import page_sizes, render_page_preview

logger = logging.getLogger(__name__)

bp = Blueprint("docprep", __name__)

REQUIRED_SIGNATORY_FIELDS = ("name", "email", "phone")


def _services():
    return current_app.extensions["docprep"]


def _pdf_url(file_id):
    base = current_app.config.get("TEMPLATE_STORAGE_URL")
    if base:
        return f"{base}{file_id}"
    return url_for("docprep.stored_file", file_id=file_id, _external=True)


def _json_list(key):
    """The list under ``key`` in a JSON object body, [] when absent, None when malformed."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None
    rows = payload.get(key) or []
    if not isinstance(rows, list):
        return None
    return rows


def _template_pdf(template_id):
    services = _services()
    template = services.db.get_template(template_id)
    return template, services.store.read(template.file_id)


@bp.errorhandler(TemplateNotFound)
def template_not_found(e):
    logger.warning(str(e))
    return jsonify({"error": "Template not found"}), 404


@bp.route("/")
def home():
    return '<h2>Welcome</h2><p>POST a document to <code>/api/upload</code> to get started.</p>'


@bp.route("/api/upload", methods=["POST"])
def upload():
    uploaded = request.files.get("file")
    if not uploaded or not uploaded.filename:
        return jsonify({"error": "No file uploaded"}), 400

    try:
        result = _services().uploads.process(uploaded.filename, uploaded.read())
    except Exception:
        logger.exception(f"Error processing file {uploaded.filename}")
        return jsonify({"error": "Error processing file"}), 500

    return jsonify(result.to_dict())


@bp.route("/files/<file_id>")
def stored_file(file_id):
    try:
        data = _services().store.read(file_id)
    except StorageError as e:
        logger.warning(f"404 for stored file: {e}")
        return jsonify({"error": "File not found"}), 404
    return send_file(io.BytesIO(data), mimetype="application/pdf", download_name=file_id)


@bp.route("/api/templates/<template_id>")
def template_detail(template_id):
    try:
        template, data = _template_pdf(template_id)
        sizes = page_sizes(data)
    except (StorageError, RuntimeError, ValueError):
        logger.exception(f"Error loading template {template_id}")
        return jsonify({"error": "Error loading template"}), 500

    return jsonify({
        "id": template.id,
        "file_id": template.file_id,
        "pdf_url": _pdf_url(template.file_id),
        "num_pages": len(sizes),
        "pages": [
            {"page_number": number, "width": size.width, "height": size.height}
            for number, size in sorted(sizes.items())
        ],
    })


@bp.route("/api/templates/<template_id>/pages/<int:page_number>/preview")
def page_preview(template_id, page_number):
    template, data = _template_pdf(template_id)
    if page_number < 1 or page_number > len(page_sizes(data)):
        return jsonify({"error": "Page number out of range."}), 404

    config = current_app.config
    stem = os.path.splitext(template.file_id)[0]
    preview_path = os.path.join(config["PREVIEW_FOLDER"], f"{stem}_page{page_number}.png")
    try:
        png = render_page_preview(
            data, page_number,
            preview_path=preview_path,
            dpi=config.get("PREVIEW_DPI", 72),
            poppler_path=config.get("POPPLER_PATH"),
        )
    except Exception:
        logger.exception(f"Error converting page {page_number} of {template.file_id} to image")
        return jsonify({"error": "Error generating preview"}), 500

    return send_file(io.BytesIO(png), mimetype="image/png")


@bp.route("/api/templates/<template_id>/signatories", methods=["GET"])
def list_signatories(template_id):
    _services().db.get_template(template_id)
    signatories = _services().db.list_signatories(template_id)
    return jsonify([s.to_dict() for s in signatories])


@bp.route("/api/templates/<template_id>/signatories", methods=["POST"])
def add_signatories(template_id):
    rows = _json_list("signatories")
    if rows is None:
        return jsonify({"error": "Expected a JSON object with a signatories list"}), 400
    if not rows:
        return jsonify({"error": "Please add at least one signatory."}), 400

    cleaned = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            return jsonify({"error": f"Signatory {index + 1} must be an object"}), 400
        values = {field: str(row.get(field) or "").strip() for field in REQUIRED_SIGNATORY_FIELDS}
        missing = [field for field, value in values.items() if not value]
        if missing:
            return jsonify({"error": f"Signatory {index + 1} is missing: {', '.join(missing)}"}), 400
        cleaned.append(values)

    db = _services().db
    db.get_template(template_id)
    try:
        inserted = db.insert_signatories(template_id, cleaned)
    except Exception:
        logger.exception(f"Error adding signatories to template {template_id}")
        return jsonify({"error": "An error occurred while adding signatories."}), 500

    logger.info(f"Added {len(inserted)} signatories to template {template_id}")
    return jsonify([s.to_dict() for s in inserted]), 201


@bp.route("/api/templates/<template_id>/annotations", methods=["GET"])
def list_annotations(template_id):
    _services().db.get_template(template_id)
    areas = _services().db.list_annotations(template_id)
    return jsonify([a.to_dict() for a in areas])


@bp.route("/api/templates/<template_id>/annotations", methods=["POST"])
def save_annotations(template_id):
    rows = _json_list("annotations")
    if rows is None or not all(isinstance(row, dict) for row in rows):
        return jsonify({"error": "Expected a JSON object with a list of annotation objects"}), 400
    try:
        areas = [AnnotationArea.from_dict(row, template_id=template_id) for row in rows]
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Invalid annotation data: {e}")
        return jsonify({"error": "Invalid annotation data"}), 400

    _, data = _template_pdf(template_id)
    num_pages = len(page_sizes(data))
    bad_pages = sorted({a.page_number for a in areas if not 1 <= a.page_number <= num_pages})
    if bad_pages:
        return jsonify({"error": f"Page number out of range: {bad_pages}"}), 400

    try:
        saved = _services().db.upsert_annotations(annotation_rows(areas, template_id))
    except Exception:
        logger.exception(f"Error saving annotations for template {template_id}")
        return jsonify({"error": "Error saving annotations"}), 500

    return jsonify([a.to_dict() for a in saved])
