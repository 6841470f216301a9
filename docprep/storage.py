import logging
import os

from filelock import FileLock, Timeout
from werkzeug.utils import secure_filename

from .errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStore:
    """A bucket of PDF objects kept in a local folder.

    Object paths are relative to the bucket, the same way a hosted bucket
    hands them back, so they can be stored as a template's ``file_id``.
    """

    def __init__(self, root, bucket="templates", lock_timeout=10):
        self.root = root
        self.bucket = bucket
        self.lock_timeout = lock_timeout
        self.bucket_dir = os.path.join(root, bucket)
        os.makedirs(self.bucket_dir, exist_ok=True)
        self._lock = FileLock(os.path.join(root, f".{bucket}.lock"))

    def local_path(self, path):
        name = secure_filename(os.path.basename(path))
        if not name or name != path:
            raise StorageError(f"Invalid object path: {path!r}")
        return os.path.join(self.bucket_dir, name)

    def upload(self, name, data, content_type="application/pdf"):
        """Store ``data`` under ``name`` and return its path. Existing objects are never overwritten."""
        target = self.local_path(name)
        try:
            with self._lock.acquire(timeout=self.lock_timeout):
                if os.path.exists(target):
                    raise StorageError(f"Object already exists: {self.bucket}/{name}")
                tmp_path = target + ".part"
                with open(tmp_path, "wb") as fh:
                    fh.write(data)
                os.replace(tmp_path, target)
        except Timeout:
            raise StorageError(f"Timed out waiting for lock on bucket {self.bucket}")
        except OSError as e:
            raise StorageError(f"Error writing {self.bucket}/{name}: {e}") from e

        logger.info(f"Stored {len(data)} bytes ({content_type}) at {self.bucket}/{name}")
        return name

    def read(self, path):
        target = self.local_path(path)
        if not os.path.exists(target):
            raise StorageError(f"Object not found: {self.bucket}/{path}")
        with open(target, "rb") as fh:
            return fh.read()
