# PIP3 modules
import pytest

# local repo modules
import badge_compositor.config as config
import badge_compositor.layout as layout
import badge_compositor.template_lib as template_lib


BADGE_WIDTH, BADGE_HEIGHT = config.BADGE_SIZES["4x3"]


#============================================
def test_single_badge_page_is_native_size() -> None:
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, 1)
	assert (geometry.page_width, geometry.page_height) == (288.0, 216.0)
	assert geometry.layout_scale == 1.0
	placement = next(layout.iter_slot_placements(geometry, 1))
	assert (placement.offset_x, placement.offset_y) == pytest.approx((0.0, 0.0))


#============================================
def test_grid_scale_four_per_page() -> None:
	"""
	Four 4x3 badges on A4 are limited by the column width.
	"""
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, 4)
	assert (geometry.columns, geometry.rows) == (2, 2)
	assert (geometry.page_width, geometry.page_height) == (595.0, 842.0)
	expected = min(277.5 / 288.0, 401.0 / 216.0) * 0.95
	assert geometry.layout_scale == pytest.approx(expected)


#============================================
@pytest.mark.parametrize("count", [3, 5, 7, 9, 0])
def test_unsupported_counts_raise(count: int) -> None:
	with pytest.raises(ValueError):
		layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, count)


#============================================
@pytest.mark.parametrize("per_page", sorted(config.GRID_LAYOUTS))
@pytest.mark.parametrize("record_count", [1, 2, 5, 8, 13])
def test_page_count_matches_ceiling(per_page: int, record_count: int) -> None:
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, per_page)
	placements = list(layout.iter_slot_placements(geometry, record_count))
	pages = {placement.page_index for placement in placements}
	expected = -(-record_count // per_page)
	assert len(pages) == expected
	assert layout.count_pages(record_count, per_page) == expected
	assert sum(1 for placement in placements if placement.new_page) == expected


#============================================
def test_slots_fill_row_major() -> None:
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, 6)
	placements = list(layout.iter_slot_placements(geometry, 6))
	cells = [(placement.column, placement.row) for placement in placements]
	assert cells == [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2), (1, 2)]
	# columns move right, rows move down the page
	assert placements[1].offset_x > placements[0].offset_x
	assert placements[2].offset_y < placements[0].offset_y
	assert placements[2].offset_x == pytest.approx(placements[0].offset_x)


#============================================
def test_badges_stay_inside_their_cells() -> None:
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, 8)
	for placement in layout.iter_slot_placements(geometry, 8):
		cell_left = geometry.margin + placement.column * geometry.cell_width
		cell_bottom = geometry.page_height - geometry.margin - (placement.row + 1) * geometry.cell_height
		assert placement.offset_x >= cell_left
		assert placement.offset_y >= cell_bottom
		assert placement.offset_x + geometry.scaled_badge_width <= cell_left + geometry.cell_width + 1e-6
		assert placement.offset_y + geometry.scaled_badge_height <= cell_bottom + geometry.cell_height + 1e-6


#============================================
def test_frame_for_slot_carries_scale() -> None:
	geometry = layout.plan_page_geometry(BADGE_WIDTH, BADGE_HEIGHT, 2)
	placement = list(layout.iter_slot_placements(geometry, 2))[1]
	frame = layout.frame_for_slot(geometry, placement)
	assert frame.layout_scale == geometry.layout_scale
	assert (frame.offset_x, frame.offset_y) == (placement.offset_x, placement.offset_y)


#============================================
def test_default_elements_have_name_and_qr() -> None:
	elements = layout.build_default_elements(BADGE_WIDTH, BADGE_HEIGHT)
	kinds = [element.kind for element in elements]
	assert template_lib.ElementKind.QR_CODE in kinds
	name_elements = [element for element in elements if element.content == "{{name}}"]
	assert len(name_elements) == 1
	assert name_elements[0].kind is template_lib.ElementKind.TEXT
	# every element fits the 384x288 pixel badge
	for element in elements:
		assert element.x + element.width <= 384.0
		assert element.y + element.height <= 288.0
