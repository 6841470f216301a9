import uuid
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional

TEMP_ID_PREFIX = "temp-"


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SIGNATURE = "signature"
    DATE = "date"
    CHECKBOX = "checkbox"


def new_temp_id():
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(area_id):
    return area_id is None or str(area_id).startswith(TEMP_ID_PREFIX)


def as_bool(value):
    """Form and JSON values: "false", "0", "off" and "" are False."""
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


@dataclass
class Template:
    id: str
    file_id: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(id=row["id"], file_id=row["file_id"], created_at=row["created_at"])

    def to_dict(self):
        return asdict(self)


@dataclass
class Signatory:
    id: Optional[str]
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    template_id: Optional[str]
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            template_id=row["template_id"],
            created_at=row["created_at"],
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class AnnotationArea:
    """A field placement on one page, in PDF units with a bottom-left origin."""

    id: str
    type: FieldType
    page_number: int
    x: float
    y: float
    width: float
    height: float
    name: Optional[str] = ""
    description: Optional[str] = ""
    required: bool = False
    template_id: Optional[str] = None
    signatory_id: Optional[str] = None

    @property
    def is_new(self):
        return is_temp_id(self.id)

    @classmethod
    def from_row(cls, row):
        # Stored numbers may come back as strings or Decimals depending on the backend.
        return cls(
            id=row["id"],
            type=FieldType(row["type"]),
            page_number=int(row["page_number"]),
            x=float(row["x"]),
            y=float(row["y"]),
            width=float(row["width"]),
            height=float(row["height"]),
            name=row["name"],
            description=row["description"],
            required=bool(row["required"]),
            template_id=row["template_id"],
            signatory_id=row["signatory_id"],
        )

    @classmethod
    def from_dict(cls, data, template_id=None):
        area_id = data.get("id")
        return cls(
            id=str(area_id) if area_id else new_temp_id(),
            type=FieldType(data["type"]),
            page_number=int(data["page_number"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            name=data.get("name") or "",
            description=data.get("description") or "",
            required=as_bool(data.get("required", False)),
            template_id=template_id or data.get("template_id"),
            signatory_id=data.get("signatory_id") or None,
        )

    def to_dict(self):
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class UploadResult:
    filename: str
    id: str
    file_id: str
    message: str = field(default="File uploaded and saved successfully")

    def to_dict(self):
        return {
            "message": self.message,
            "filename": self.filename,
            "id": self.id,
            "file_id": self.file_id,
        }
