"""
Conversion of office and text documents to PDF.

Two converters share one call shape, ``convert(data, extension) -> bytes``:

* ``AdobeConverter`` talks to the Adobe PDF Services REST API
  (token -> upload asset -> create-pdf job -> poll -> download).
* ``SofficeConverter`` runs a local LibreOffice in headless mode.

The extension is checked against ``MIME_TYPES`` before any work is done.
Nothing is retried; a failed call raises ``ConversionError``.
"""
import logging
import os
import shutil
import subprocess
import tempfile
import time

import requests

from .errors import ConversionError, UnsupportedFileType

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "txt": "text/plain",
    "rtf": "text/rtf",
    "html": "text/html",
    "htm": "text/html",
}


def needs_conversion(extension):
    return extension.lower() != "pdf"


def mime_type_for(extension):
    try:
        return MIME_TYPES[extension.lower()]
    except KeyError:
        raise UnsupportedFileType(extension) from None


class AdobeConverter:
    def __init__(self, client_id, client_secret, base_url="https://pdf-services.adobe.io",
                 timeout=120, poll_interval=1.0, session=None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.session = session or requests.Session()

    def _token(self):
        resp = self.session.post(
            f"{self.base_url}/token",
            data={"client_id": self.client_id, "client_secret": self.client_secret},
            timeout=30,
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    def _headers(self, token):
        return {"Authorization": f"Bearer {token}", "X-API-Key": self.client_id}

    def convert(self, data, extension):
        mime_type = mime_type_for(extension)
        if not self.client_id or not self.client_secret:
            raise ConversionError("Adobe PDF Services credentials are not configured")

        try:
            token = self._token()
            headers = self._headers(token)

            resp = self.session.post(f"{self.base_url}/assets", headers=headers,
                                     json={"mediaType": mime_type}, timeout=30)
            resp.raise_for_status()
            asset = resp.json()

            resp = self.session.put(asset["uploadUri"], data=data,
                                    headers={"Content-Type": mime_type}, timeout=60)
            resp.raise_for_status()

            resp = self.session.post(f"{self.base_url}/operation/createpdf", headers=headers,
                                     json={"assetID": asset["assetID"]}, timeout=30)
            resp.raise_for_status()
            polling_url = resp.headers.get("location")
            if not polling_url:
                raise ConversionError("Conversion job was not accepted: no polling location")
            logger.info(f"Submitted create-pdf job for .{extension} ({len(data)} bytes)")

            result = self._wait_for_job(polling_url, headers)
            download_uri = (result.get("asset") or {}).get("downloadUri")
            if not download_uri:
                raise ConversionError("Failed to get result asset")

            resp = self.session.get(download_uri, timeout=60)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ConversionError(f"Conversion request failed: {e}") from e

        logger.info(f"Conversion finished: {len(resp.content)} bytes of PDF")
        return resp.content

    def _wait_for_job(self, polling_url, headers):
        deadline = time.monotonic() + self.timeout
        while True:
            resp = self.session.get(polling_url, headers=headers, timeout=30)
            resp.raise_for_status()
            body = resp.json()
            status = body.get("status")
            if status == "done":
                return body
            if status == "failed":
                raise ConversionError(f"Conversion job failed: {body.get('error')}")
            if time.monotonic() >= deadline:
                raise ConversionError(f"Conversion job did not finish within {self.timeout}s")
            time.sleep(self.poll_interval)


class SofficeConverter:
    """Convert with a local LibreOffice (``soffice --headless --convert-to pdf``)."""

    def __init__(self, binary=None, timeout=120):
        self.binary = binary or shutil.which("soffice") or shutil.which("libreoffice")
        self.timeout = timeout

    def convert(self, data, extension):
        mime_type_for(extension)
        if not self.binary:
            raise ConversionError("LibreOffice (soffice) was not found on PATH")

        work_dir = tempfile.mkdtemp(prefix="docprep_soffice_")
        try:
            source = os.path.join(work_dir, f"source.{extension.lower()}")
            with open(source, "wb") as fh:
                fh.write(data)
            try:
                subprocess.run(
                    [self.binary, "--headless", "--convert-to", "pdf", "--outdir", work_dir, source],
                    check=True,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                )
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
                raise ConversionError(f"LibreOffice conversion failed: {e}") from e

            generated = os.path.join(work_dir, "source.pdf")
            if not os.path.exists(generated):
                raise ConversionError("LibreOffice produced no PDF")
            with open(generated, "rb") as fh:
                return fh.read()
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)


def build_converter(config):
    kind = (config.get("CONVERTER") or "adobe").lower()
    if kind == "soffice":
        return SofficeConverter(timeout=config.get("CONVERSION_TIMEOUT", 120))
    if kind == "adobe":
        return AdobeConverter(
            client_id=config.get("ADOBE_CLIENT_ID", ""),
            client_secret=config.get("ADOBE_CLIENT_SECRET", ""),
            base_url=config.get("ADOBE_API_BASE", "https://pdf-services.adobe.io"),
            timeout=config.get("CONVERSION_TIMEOUT", 120),
        )
    raise ValueError(f"Unknown converter: {kind}")
