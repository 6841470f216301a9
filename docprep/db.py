import logging
import sqlite3
import uuid

from .errors import TemplateNotFound
from .models import AnnotationArea, Signatory, Template, is_temp_id

logger = logging.getLogger(__name__)

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS templates (
        id TEXT PRIMARY KEY,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        file_id TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS signatories (
        id TEXT PRIMARY KEY,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        name TEXT,
        email TEXT,
        phone TEXT,
        template_id TEXT REFERENCES templates(id)
    );

    CREATE TABLE IF NOT EXISTS annotations (
        id TEXT PRIMARY KEY,
        name TEXT,
        description TEXT,
        required INTEGER DEFAULT 0,
        template_id TEXT REFERENCES templates(id),
        signatory_id TEXT REFERENCES signatories(id),
        x REAL,
        y REAL,
        width REAL,
        height REAL,
        type TEXT NOT NULL,
        page_number INTEGER NOT NULL DEFAULT 1
    );

    CREATE INDEX IF NOT EXISTS idx_signatories_template ON signatories(template_id);
    CREATE INDEX IF NOT EXISTS idx_annotations_template ON annotations(template_id);
'''

ANNOTATION_COLUMNS = (
    "name", "description", "required", "template_id", "signatory_id",
    "x", "y", "width", "height", "type", "page_number",
)


def _new_id():
    return uuid.uuid4().hex


class Database:
    """Templates, signatories and annotations in one SQLite file.

    Each call opens its own connection, so an instance can be shared
    between request handlers.
    """

    def __init__(self, path):
        self.path = path

    def connect(self):
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        conn = self.connect()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Database schema ready at {self.path}")

    # Templates

    def insert_template(self, file_id):
        template_id = _new_id()
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute('INSERT INTO templates (id, file_id) VALUES (?, ?)', (template_id, file_id))
            conn.commit()
            c.execute('SELECT * FROM templates WHERE id = ?', (template_id,))
            row = c.fetchone()
        finally:
            conn.close()
        return Template.from_row(row)

    def get_template(self, template_id):
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute('SELECT * FROM templates WHERE id = ?', (template_id,))
            row = c.fetchone()
        finally:
            conn.close()
        if row is None:
            raise TemplateNotFound(template_id)
        return Template.from_row(row)

    # Signatories

    def insert_signatories(self, template_id, signatories):
        """Insert all rows in one transaction and return them with their new ids."""
        ids = []
        conn = self.connect()
        try:
            c = conn.cursor()
            for signatory in signatories:
                signatory_id = _new_id()
                c.execute(
                    'INSERT INTO signatories (id, name, email, phone, template_id) VALUES (?, ?, ?, ?, ?)',
                    (signatory_id, signatory.get('name'), signatory.get('email'),
                     signatory.get('phone'), template_id),
                )
                ids.append(signatory_id)
            conn.commit()
            rows = [c.execute('SELECT * FROM signatories WHERE id = ?', (i,)).fetchone() for i in ids]
        finally:
            conn.close()
        return [Signatory.from_row(row) for row in rows]

    def list_signatories(self, template_id):
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute('SELECT * FROM signatories WHERE template_id = ? ORDER BY created_at, rowid',
                      (template_id,))
            rows = c.fetchall()
        finally:
            conn.close()
        return [Signatory.from_row(row) for row in rows]

    # Annotations

    def list_annotations(self, template_id):
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute('SELECT * FROM annotations WHERE template_id = ? ORDER BY rowid', (template_id,))
            rows = c.fetchall()
        finally:
            conn.close()
        return [AnnotationArea.from_row(row) for row in rows]

    def upsert_annotations(self, rows):
        """Create rows without an id and update rows with one, in a single transaction.

        Returns the stored rows in the same order as ``rows``. Rows that are
        not part of the batch are left untouched.
        """
        placeholders = ', '.join('?' for _ in ANNOTATION_COLUMNS)
        updates = ', '.join(f'{col} = excluded.{col}' for col in ANNOTATION_COLUMNS)
        sql = (
            f'INSERT INTO annotations (id, {", ".join(ANNOTATION_COLUMNS)}) '
            f'VALUES (?, {placeholders}) '
            f'ON CONFLICT(id) DO UPDATE SET {updates}'
        )

        ids = []
        conn = self.connect()
        try:
            c = conn.cursor()
            for row in rows:
                row_id = row.get('id')
                if is_temp_id(row_id):
                    row_id = _new_id()
                values = [row.get(col) for col in ANNOTATION_COLUMNS]
                values[ANNOTATION_COLUMNS.index('required')] = int(bool(row.get('required')))
                c.execute(sql, [row_id] + values)
                ids.append(row_id)
            conn.commit()
            saved = [c.execute('SELECT * FROM annotations WHERE id = ?', (i,)).fetchone() for i in ids]
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"Upserted {len(saved)} annotations")
        return [AnnotationArea.from_row(row) for row in saved]
