"""
Annotation editor view model.

Holds what the placement screen holds for one template: the native size of
each page, the width of the container the page is fitted to, the fields
placed so far, which one is selected and which page is shown. Pointer
callbacks hand in screen rectangles; everything stored on an area is in
PDF units with a bottom-left origin.

Nothing reaches the store until ``save()``, which sends every in-memory
area in one upsert. Areas removed with ``remove_area()`` are only dropped
from memory.
"""
import logging
from enum import Enum

from .coords import Rect, clamp_move, clamp_resize, round_rect, scale_for, to_document, to_screen
from .errors import EditorNotReady
from .models import AnnotationArea, FieldType, as_bool, new_temp_id

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 100
DEFAULT_HEIGHT = 50
DEFAULT_LEFT = 50
DEFAULT_TOP_OFFSET = 100

EDITABLE_FIELDS = ("name", "description", "required", "signatory_id", "type")


class AreaStatus(str, Enum):
    UNSAVED_NEW = "unsaved-new"
    SAVED = "saved"
    SAVED_MODIFIED = "saved-modified"


def annotation_rows(areas, template_id):
    """Rows for one batch upsert: temporary ids dropped, coordinates rounded."""
    rows = []
    for area in areas:
        rect = round_rect(Rect(area.x, area.y, area.width, area.height))
        row = {} if area.is_new else {"id": area.id}
        row.update({
            "name": area.name,
            "description": area.description,
            "required": area.required,
            "template_id": template_id,
            "signatory_id": area.signatory_id,
            "x": rect.x,
            "y": rect.y,
            "width": rect.width,
            "height": rect.height,
            "type": FieldType(area.type).value,
            "page_number": area.page_number,
        })
        rows.append(row)
    return rows


class AnnotationEditor:
    def __init__(self, template_id, db, container_width=0):
        self.template_id = template_id
        self.db = db
        self.page_sizes = {}
        self.page_number = 1
        self.container_width = container_width
        self.scale = 1.0
        self.areas = []
        self.signatories = []
        self.selected_id = None
        self.loading = True
        self._modified = set()

    # Loading

    def load(self):
        """Fetch signatories and saved annotations; a failure in one leaves only that set empty."""
        self.loading = True
        try:
            self.signatories = self.db.list_signatories(self.template_id)
        except Exception:
            logger.exception(f"Error loading signatories for template {self.template_id}")
            self.signatories = []

        try:
            self.areas = self.db.list_annotations(self.template_id)
        except Exception:
            logger.exception(f"Error loading annotations for template {self.template_id}")
            self.areas = []

        self._modified.clear()
        self.selected_id = None
        self.loading = False

    def set_page_sizes(self, sizes):
        self.page_sizes = dict(sizes)
        if self.page_sizes:
            self.page_number = min(max(self.page_number, 1), self.num_pages)
        self._rescale()

    # Page geometry

    @property
    def num_pages(self):
        return len(self.page_sizes)

    @property
    def page_size(self):
        return self.page_sizes.get(self.page_number)

    @property
    def is_ready(self):
        return self.page_size is not None

    @property
    def can_add_fields(self):
        return self.is_ready and not self.loading

    def set_container_width(self, width_px):
        self.container_width = width_px
        self._rescale()

    def _rescale(self):
        if self.page_size is not None and self.container_width > 0:
            self.scale = scale_for(self.page_size, self.container_width)

    def go_to_page(self, page_number):
        if self.num_pages:
            page_number = min(max(page_number, 1), self.num_pages)
        else:
            page_number = 1
        self.page_number = page_number
        self._rescale()

    def next_page(self):
        self.go_to_page(self.page_number + 1)

    def prev_page(self):
        self.go_to_page(self.page_number - 1)

    # Areas

    def get_area(self, area_id):
        for area in self.areas:
            if area.id == area_id:
                return area
        raise KeyError(area_id)

    def current_page_areas(self):
        return [a for a in self.areas if a.page_number == self.page_number]

    def visible_areas(self):
        """(area, screen rect) pairs for the current page; empty while the page is loading."""
        page = self.page_size
        if page is None:
            return []
        return [
            (area, to_screen(Rect(area.x, area.y, area.width, area.height), page, self.scale))
            for area in self.current_page_areas()
        ]

    def add_area(self, field_type):
        if not self.can_add_fields:
            raise EditorNotReady("Page size is not known yet")

        page = self.page_size
        rect = clamp_move(
            Rect(DEFAULT_LEFT, page.height - DEFAULT_TOP_OFFSET, DEFAULT_WIDTH, DEFAULT_HEIGHT),
            page,
        )
        area = AnnotationArea(
            id=new_temp_id(),
            type=FieldType(field_type),
            page_number=self.page_number,
            x=rect.x,
            y=rect.y,
            width=rect.width,
            height=rect.height,
            name="",
            description="",
            required=False,
            template_id=None,
            signatory_id=self.signatories[0].id if self.signatories else None,
        )
        self.areas.append(area)
        self.selected_id = area.id
        return area

    def remove_area(self, area_id):
        area = self.get_area(area_id)
        self.areas.remove(area)
        self._modified.discard(area_id)
        if self.selected_id == area_id:
            self.selected_id = None

    def drag_stop(self, area_id, screen_x, screen_y):
        area = self.get_area(area_id)
        page = self._page_of(area)
        moved = to_document(
            Rect(screen_x, screen_y, area.width * self.scale, area.height * self.scale),
            page, self.scale,
        )
        self._set_rect(area, clamp_move(Rect(moved.x, moved.y, area.width, area.height), page))
        return area

    def resize_stop(self, area_id, screen_x, screen_y, screen_width, screen_height):
        area = self.get_area(area_id)
        page = self._page_of(area)
        resized = to_document(Rect(screen_x, screen_y, screen_width, screen_height), page, self.scale)
        self._set_rect(area, clamp_resize(resized, page))
        return area

    def update_area(self, area_id, **props):
        area = self.get_area(area_id)
        changes = {}
        for key, value in props.items():
            if key not in EDITABLE_FIELDS:
                raise ValueError(f"Field {key!r} cannot be edited")
            if key == "type":
                value = FieldType(value)
            elif key == "required":
                value = as_bool(value)
            elif key == "signatory_id":
                value = value or None
            changes[key] = value

        # Nothing is written unless every property is valid
        for key, value in changes.items():
            setattr(area, key, value)
        self._mark_modified(area)
        return area

    def update_selected(self, **props):
        if self.selected_id is None:
            return None
        return self.update_area(self.selected_id, **props)

    def _page_of(self, area):
        page = self.page_sizes.get(area.page_number)
        if page is None:
            raise EditorNotReady(f"Size of page {area.page_number} is not known yet")
        return page

    def _set_rect(self, area, rect):
        area.x, area.y, area.width, area.height = rect
        self._mark_modified(area)

    def _mark_modified(self, area):
        if not area.is_new:
            self._modified.add(area.id)

    # Selection

    def select(self, area_id):
        self.get_area(area_id)
        self.selected_id = area_id

    def click_background(self):
        self.selected_id = None

    @property
    def selected_area(self):
        if self.selected_id is None:
            return None
        try:
            return self.get_area(self.selected_id)
        except KeyError:
            return None

    # Persistence

    def status(self, area_id):
        area = self.get_area(area_id)
        if area.is_new:
            return AreaStatus.UNSAVED_NEW
        if area_id in self._modified:
            return AreaStatus.SAVED_MODIFIED
        return AreaStatus.SAVED

    def save(self):
        rows = annotation_rows(self.areas, self.template_id)
        try:
            saved = self.db.upsert_annotations(rows)
        except Exception:
            logger.exception(f"Error saving annotations for template {self.template_id}")
            return False

        # The store answers in request order.
        for area, stored in zip(self.areas, saved):
            if area.id != stored.id:
                if self.selected_id == area.id:
                    self.selected_id = stored.id
                area.id = stored.id
            area.template_id = stored.template_id
        self._modified.clear()
        logger.info(f"Annotations saved successfully: {len(saved)} rows for template {self.template_id}")
        return True
