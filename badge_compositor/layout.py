"""
Page planning, grid placement and the default badge layout.
"""

# Standard Library
import typing

# local repo modules
import badge_compositor as bc
import badge_compositor.config
import badge_compositor.geometry
import badge_compositor.template_lib


PageGeometry = bc.config.PageGeometry
SlotPlacement = bc.config.SlotPlacement
BadgeFrame = bc.geometry.BadgeFrame
Element = bc.template_lib.Element
ElementKind = bc.template_lib.ElementKind

GRID_LAYOUTS = bc.config.GRID_LAYOUTS
GRID_MARGIN = bc.config.GRID_MARGIN
GRID_FIT_FACTOR = bc.config.GRID_FIT_FACTOR
SHEET_WIDTH = bc.config.SHEET_WIDTH
SHEET_HEIGHT = bc.config.SHEET_HEIGHT


#============================================
def plan_page_geometry(
	badge_width: float,
	badge_height: float,
	badges_per_page: int,
	grid_layouts: dict[int, tuple[int, int]] = GRID_LAYOUTS,
	sheet_size: tuple[float, float] = (SHEET_WIDTH, SHEET_HEIGHT),
	margin: float = GRID_MARGIN,
	fit_factor: float = GRID_FIT_FACTOR,
) -> PageGeometry:
	"""
	Decide page size, grid shape and badge scale.

	One badge per page prints at native size. Several per page go on a
	standard sheet, shrunk to fit the grid cell with a little breathing room.

	Args:
		badge_width: Native badge width in points.
		badge_height: Native badge height in points.
		badges_per_page: Supported grid count.
		grid_layouts: Count to (columns, rows) table.
		sheet_size: Sheet (width, height) in points for multi-badge pages.
		margin: Sheet margin in points on every edge.
		fit_factor: Safety factor applied to the fit scale.

	Returns:
		PageGeometry.
	"""
	if badges_per_page not in grid_layouts:
		supported = ", ".join(str(count) for count in sorted(grid_layouts))
		raise ValueError(f"unsupported badges per page {badges_per_page} (supported: {supported})")
	if badges_per_page == 1:
		return PageGeometry(
			page_width=badge_width,
			page_height=badge_height,
			badge_width=badge_width,
			badge_height=badge_height,
			columns=1,
			rows=1,
			margin=0.0,
			layout_scale=1.0,
		)
	columns, rows = grid_layouts[badges_per_page]
	page_width, page_height = sheet_size
	available_width = (page_width - margin * 2.0) / columns
	available_height = (page_height - margin * 2.0) / rows
	layout_scale = min(available_width / badge_width, available_height / badge_height) * fit_factor
	return PageGeometry(
		page_width=page_width,
		page_height=page_height,
		badge_width=badge_width,
		badge_height=badge_height,
		columns=columns,
		rows=rows,
		margin=margin,
		layout_scale=layout_scale,
	)


#============================================
def compute_slot_offset(geometry: PageGeometry, column: int, row: int) -> tuple[float, float]:
	"""
	Compute a badge's bottom-left corner for a grid cell.

	Rows count downward from the page top; the badge is centered in its cell.

	Args:
		geometry: Planned page geometry.
		column: Column index.
		row: Row index from the top.

	Returns:
		Tuple of (offset_x, offset_y) in points.
	"""
	cell_width = geometry.cell_width
	cell_height = geometry.cell_height
	offset_x = geometry.margin + column * cell_width + (cell_width - geometry.scaled_badge_width) / 2.0
	offset_y = (
		geometry.page_height
		- geometry.margin
		- (row + 1) * cell_height
		+ (cell_height - geometry.scaled_badge_height) / 2.0
	)
	return (offset_x, offset_y)


#============================================
def iter_slot_placements(geometry: PageGeometry, record_count: int) -> typing.Iterator[SlotPlacement]:
	"""
	Assign records to grid slots in input order, row-major.

	Args:
		geometry: Planned page geometry.
		record_count: Number of records.

	Yields:
		SlotPlacement per record; new_page marks the first slot of a page.
	"""
	per_page = geometry.badges_per_page
	for index in range(record_count):
		slot = index % per_page
		column = slot % geometry.columns
		row = slot // geometry.columns
		offset_x, offset_y = compute_slot_offset(geometry, column, row)
		yield SlotPlacement(
			record_index=index,
			page_index=index // per_page,
			slot=slot,
			column=column,
			row=row,
			offset_x=offset_x,
			offset_y=offset_y,
			layout_scale=geometry.layout_scale,
			new_page=slot == 0,
		)


#============================================
def count_pages(record_count: int, badges_per_page: int) -> int:
	"""
	Number of pages for a batch, ceil(records / per page).
	"""
	if record_count <= 0:
		return 0
	return (record_count + badges_per_page - 1) // badges_per_page


#============================================
def frame_for_slot(geometry: PageGeometry, placement: SlotPlacement) -> BadgeFrame:
	"""
	Build the badge frame the renderer draws into.
	"""
	return BadgeFrame(
		offset_x=placement.offset_x,
		offset_y=placement.offset_y,
		width=geometry.badge_width,
		height=geometry.badge_height,
		layout_scale=placement.layout_scale,
	)


#============================================
def build_default_elements(badge_width: float, badge_height: float) -> list[Element]:
	"""
	Synthesize a usable badge layout for templates without elements.

	Args:
		badge_width: Badge width in points.
		badge_height: Badge height in points.

	Returns:
		Background, name, ticket type, institution, QR code and
		registration number elements in template pixel space.
	"""
	width = bc.config.points_to_pixels(badge_width)
	height = bc.config.points_to_pixels(badge_height)
	inner_width = width - 40.0
	return [
		Element(
			kind=ElementKind.SHAPE,
			element_id="bg",
			x=0.0,
			y=0.0,
			width=width,
			height=height,
			background_color="#ffffff",
			z_index=0,
		),
		Element(
			kind=ElementKind.TEXT,
			element_id="name",
			x=20.0,
			y=40.0,
			width=inner_width,
			height=50.0,
			content="{{name}}",
			font_size=28.0,
			font_weight="bold",
			align="center",
			color="#1a1a2e",
			text_case="uppercase",
			z_index=1,
		),
		Element(
			kind=ElementKind.TEXT,
			element_id="ticket",
			x=20.0,
			y=95.0,
			width=inner_width,
			height=30.0,
			content="{{ticket_type}}",
			font_size=16.0,
			align="center",
			color="#4a4a68",
			z_index=1,
		),
		Element(
			kind=ElementKind.TEXT,
			element_id="institution",
			x=20.0,
			y=130.0,
			width=inner_width,
			height=25.0,
			content="{{institution}}",
			font_size=12.0,
			align="center",
			color="#6b6b80",
			z_index=1,
		),
		Element(
			kind=ElementKind.QR_CODE,
			element_id="qr",
			x=(width - 80.0) / 2.0,
			y=height - 110.0,
			width=80.0,
			height=80.0,
			content="{{checkin_url}}",
			z_index=1,
		),
		Element(
			kind=ElementKind.TEXT,
			element_id="regnum",
			x=20.0,
			y=height - 25.0,
			width=inner_width,
			height=20.0,
			content="{{registration_number}}",
			font_size=10.0,
			align="center",
			color="#888888",
			z_index=1,
		),
	]
