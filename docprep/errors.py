class DocprepError(Exception):
    """Base class for errors raised by docprep."""


class UnsupportedFileType(DocprepError):
    def __init__(self, extension):
        super().__init__(f"Unsupported file type: {extension}")
        self.extension = extension


class ConversionError(DocprepError):
    """The conversion service failed or returned no document."""


class StorageError(DocprepError):
    """Writing to or reading from the object store failed."""


class TemplateNotFound(DocprepError):
    def __init__(self, template_id):
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class EditorNotReady(DocprepError):
    """Raised when fields are added before the page size is known."""


class InvalidDocument(DocprepError):
    """An upload named as a PDF does not contain PDF data."""
