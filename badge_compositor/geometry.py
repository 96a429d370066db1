"""
Template pixel space to output point space transforms.

Templates are authored in screen pixels (96 DPI, origin top-left, y down);
PDF output is in points (72 DPI, origin bottom-left, y up).
"""

# Standard Library
import dataclasses

# local repo modules
import badge_compositor as bc
import badge_compositor.config


DPI_FACTOR = bc.config.DPI_FACTOR


@dataclasses.dataclass(frozen=True)
class Rect:
	x: float
	y: float
	width: float
	height: float

	@property
	def top(self) -> float:
		return self.y + self.height

	@property
	def center_x(self) -> float:
		return self.x + self.width / 2.0

	@property
	def center_y(self) -> float:
		return self.y + self.height / 2.0


@dataclasses.dataclass(frozen=True)
class BadgeFrame:
	"""
	Where one badge instance sits on the output page.

	offset_x/offset_y are the badge's bottom-left corner in points;
	width/height are the native badge size before layout scaling.
	"""
	offset_x: float
	offset_y: float
	width: float
	height: float
	layout_scale: float = 1.0

	@property
	def scaled_width(self) -> float:
		return self.width * self.layout_scale

	@property
	def scaled_height(self) -> float:
		return self.height * self.layout_scale

	@property
	def rect(self) -> Rect:
		return Rect(self.offset_x, self.offset_y, self.scaled_width, self.scaled_height)


#============================================
def scale_length(value: float, layout_scale: float, dpi_factor: float = DPI_FACTOR) -> float:
	"""
	Scale a template pixel length into output points.

	Args:
		value: Length in template pixels.
		layout_scale: Per-badge layout scale.
		dpi_factor: Pixel to point factor.

	Returns:
		Length in points.
	"""
	return value * dpi_factor * layout_scale


#============================================
def transform_rect(
	x: float,
	y: float,
	width: float,
	height: float,
	frame: BadgeFrame,
	dpi_factor: float = DPI_FACTOR,
) -> Rect:
	"""
	Map a template rectangle into output space for one badge.

	outputY = offsetY + badgeHeight - (y + height) * dpi * scale, where
	badgeHeight is the scaled badge height.

	Args:
		x: Template x in pixels (from the left edge).
		y: Template y in pixels (from the top edge).
		width: Template width in pixels.
		height: Template height in pixels.
		frame: Badge placement on the page.
		dpi_factor: Pixel to point factor.

	Returns:
		Output rectangle with a bottom-left origin.
	"""
	scale = frame.layout_scale
	out_x = frame.offset_x + scale_length(x, scale, dpi_factor)
	out_y = frame.offset_y + frame.scaled_height - scale_length(y + height, scale, dpi_factor)
	return Rect(
		x=out_x,
		y=out_y,
		width=scale_length(width, scale, dpi_factor),
		height=scale_length(height, scale, dpi_factor),
	)


#============================================
def inverse_transform_rect(
	rect: Rect,
	frame: BadgeFrame,
	dpi_factor: float = DPI_FACTOR,
) -> Rect:
	"""
	Map an output rectangle back into template pixel space.

	Args:
		rect: Output rectangle.
		frame: Badge placement used for the forward transform.
		dpi_factor: Pixel to point factor.

	Returns:
		Template rectangle with a top-left origin.
	"""
	factor = dpi_factor * frame.layout_scale
	width = rect.width / factor
	height = rect.height / factor
	x = (rect.x - frame.offset_x) / factor
	y = (frame.offset_y + frame.scaled_height - rect.y) / factor - height
	return Rect(x=x, y=y, width=width, height=height)


#============================================
def fit_centered(box: Rect, content_width: float, content_height: float) -> Rect:
	"""
	Aspect-fit content inside a box and center it.

	Args:
		box: Target box.
		content_width: Natural content width.
		content_height: Natural content height.

	Returns:
		Placed content rectangle.
	"""
	if content_width <= 0 or content_height <= 0:
		return Rect(box.center_x, box.center_y, 0.0, 0.0)
	scale = min(box.width / content_width, box.height / content_height)
	scaled_width = content_width * scale
	scaled_height = content_height * scale
	return Rect(
		x=box.x + (box.width - scaled_width) / 2.0,
		y=box.y + (box.height - scaled_height) / 2.0,
		width=scaled_width,
		height=scaled_height,
	)


#============================================
def centered_square(box: Rect) -> Rect:
	"""
	Largest square centered in a box.
	"""
	size = min(box.width, box.height)
	return Rect(
		x=box.x + (box.width - size) / 2.0,
		y=box.y + (box.height - size) / 2.0,
		width=size,
		height=size,
	)
