import pytest

from docprep.coords import (
    PageSize, Rect, clamp_move, clamp_resize, round_rect, scale_for, to_document, to_screen,
    within_page,
)

LETTER = PageSize(612, 792)


def test_letter_page_in_816px_container():
    scale = scale_for(LETTER, 816)
    assert scale == pytest.approx(1.3333, abs=1e-4)

    screen = to_screen(Rect(50, 692, 100, 50), LETTER, scale)
    assert screen.x == pytest.approx(66.7, abs=0.05)
    assert screen.y == pytest.approx(66.7, abs=0.05)
    assert screen.width == pytest.approx(133.3, abs=0.05)
    assert screen.height == pytest.approx(66.7, abs=0.05)


@pytest.mark.parametrize("rect", [
    Rect(0, 0, 612, 792),
    Rect(50, 692, 100, 50),
    Rect(300.25, 10.75, 17.75, 3.125),
])
@pytest.mark.parametrize("width_px", [306, 816, 1200])
def test_inverse_undoes_forward(rect, width_px):
    scale = scale_for(LETTER, width_px)
    back = to_document(to_screen(rect, LETTER, scale), LETTER, scale)
    assert back == pytest.approx(rect)
    assert round_rect(back) == round_rect(rect)


def test_rescale_keeps_document_rect():
    rect = Rect(50, 692, 100, 50)
    small = to_screen(rect, LETTER, scale_for(LETTER, 408))
    large = to_screen(rect, LETTER, scale_for(LETTER, 816))
    assert large.x == pytest.approx(small.x * 2)
    assert large.y == pytest.approx(small.y * 2)
    assert large.width == pytest.approx(small.width * 2)


def test_scale_needs_page_width():
    with pytest.raises(ValueError):
        scale_for(PageSize(0, 792), 816)


def test_clamp_move_keeps_size():
    moved = clamp_move(Rect(580, -20, 100, 50), LETTER)
    assert moved == Rect(512, 0, 100, 50)


def test_clamp_move_shrinks_oversized_rect():
    moved = clamp_move(Rect(-5, -5, 700, 900), LETTER)
    assert moved == Rect(0, 0, 612, 792)


def test_clamp_resize_trims_at_boundary():
    resized = clamp_resize(Rect(550, 760, 100, 50), LETTER)
    assert resized == Rect(550, 760, 62, 32)


def test_clamp_resize_past_left_edge_keeps_size():
    resized = clamp_resize(Rect(-30, 100, 80, 40), LETTER)
    assert resized == Rect(0, 100, 80, 40)


def test_clamp_resize_past_bottom_edge_keeps_size():
    resized = clamp_resize(Rect(200, -15, 60, 30), LETTER)
    assert resized == Rect(200, 0, 60, 30)


@pytest.mark.parametrize("rect", [
    Rect(-100, -100, 50, 50),
    Rect(700, 900, 20, 20),
    Rect(600, 780, 40, 40),
    Rect(-10, 400, 1000, 10),
])
def test_clamped_rects_stay_on_page(rect):
    assert within_page(clamp_move(rect, LETTER), LETTER)
    assert within_page(clamp_resize(rect, LETTER), LETTER)


def test_round_rect_half_up():
    assert round_rect(Rect(0.5, 1.49, 2.5, 99.999)) == Rect(1, 1, 3, 100)
