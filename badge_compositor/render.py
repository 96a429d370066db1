"""
Element rendering onto a ReportLab canvas.
"""

# Standard Library
import dataclasses
import datetime
import io
import logging
import pathlib
import typing
import urllib.parse

# PIP3 modules
import PIL.Image
import qrcode
import qrcode.constants
import qrcode.exceptions
import qrcode.image.pil
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfgen.canvas
import requests

# local repo modules
import badge_compositor as bc
import badge_compositor.config
import badge_compositor.geometry
import badge_compositor.placeholders
import badge_compositor.template_lib


logger = logging.getLogger(__name__)

Canvas = reportlab.pdfgen.canvas.Canvas
ImageReader = reportlab.lib.utils.ImageReader
Element = bc.template_lib.Element
ElementKind = bc.template_lib.ElementKind
Template = bc.template_lib.Template
DataRecord = bc.template_lib.DataRecord
OwningCollection = bc.template_lib.OwningCollection
DocumentKind = bc.config.DocumentKind
Rect = bc.geometry.Rect
BadgeFrame = bc.geometry.BadgeFrame

DEFAULT_FONT_REGULAR = bc.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = bc.config.DEFAULT_FONT_BOLD
DEFAULT_FONT_ITALIC = bc.config.DEFAULT_FONT_ITALIC
DEFAULT_FONT_BOLD_ITALIC = bc.config.DEFAULT_FONT_BOLD_ITALIC
DEFAULT_TEXT_COLOR = bc.config.DEFAULT_TEXT_COLOR
DEFAULT_BACKGROUND_COLOR = bc.config.DEFAULT_BACKGROUND_COLOR
BARCODE_MAX_TEXT_SIZE = bc.config.BARCODE_MAX_TEXT_SIZE
BARCODE_TEXT_RATIO = bc.config.BARCODE_TEXT_RATIO
BARCODE_QUIET_BARS = bc.config.BARCODE_QUIET_BARS
PHOTO_FILL_GRAY = bc.config.PHOTO_FILL_GRAY
PHOTO_BORDER_GRAY = bc.config.PHOTO_BORDER_GRAY
PHOTO_BORDER_WIDTH = bc.config.PHOTO_BORDER_WIDTH
MIN_LINE_THICKNESS = bc.config.MIN_LINE_THICKNESS
QR_OVERSAMPLE = bc.config.QR_OVERSAMPLE
QR_BORDER = bc.config.QR_BORDER
FETCH_TIMEOUT_SECONDS = bc.config.FETCH_TIMEOUT_SECONDS
PNG_SIGNATURE = bc.config.PNG_SIGNATURE
JPEG_SIGNATURE = bc.config.JPEG_SIGNATURE

DEFAULT_QR_CONTENT = {
	DocumentKind.BADGE: "{{checkin_url}}",
	DocumentKind.CERTIFICATE: "{{verification_url}}",
}

IMAGE_LOAD_ERRORS = (
	requests.RequestException,
	OSError,
	ValueError,
	PIL.Image.DecompressionBombError,
)


#============================================
def fetch_asset_bytes(url: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> bytes:
	"""
	Fetch raw asset bytes from an http(s) URL, file:// URL or local path.

	Args:
		url: Asset location.
		timeout: Network timeout in seconds.

	Returns:
		Asset bytes.
	"""
	parsed = urllib.parse.urlparse(url)
	if parsed.scheme in ("http", "https"):
		response = requests.get(url, timeout=timeout)
		response.raise_for_status()
		return response.content
	if parsed.scheme == "file":
		return pathlib.Path(urllib.parse.unquote(parsed.path)).read_bytes()
	return pathlib.Path(url).read_bytes()


#============================================
def sniff_image_format(data: bytes) -> str | None:
	"""
	Identify PNG or JPEG data from its first two bytes.

	Args:
		data: Image bytes.

	Returns:
		"png", "jpeg" or None.
	"""
	head = data[:2]
	if head == PNG_SIGNATURE:
		return "png"
	if head == JPEG_SIGNATURE:
		return "jpeg"
	return None


#============================================
def decode_image(data: bytes) -> ImageReader:
	"""
	Decode PNG or JPEG bytes into a ReportLab image.

	Args:
		data: Image bytes.

	Returns:
		ImageReader for drawing.
	"""
	image_format = sniff_image_format(data)
	if image_format is None:
		raise ValueError("unsupported image format (expected PNG or JPEG)")
	image = PIL.Image.open(io.BytesIO(data))
	image.load()
	return ImageReader(image)


class AssetLoader:
	"""
	Fetch-and-decode cache for one generation call.

	Each URL is fetched at most once; failures are cached as None so an
	unreachable asset is reported once per batch.
	"""

	def __init__(
		self,
		fetch: typing.Callable[[str], bytes] | None = None,
		timeout: float = FETCH_TIMEOUT_SECONDS,
	):
		self._fetch = fetch
		self._timeout = timeout
		self._cache: dict[str, ImageReader | None] = {}
		self.failures: list[str] = []

	def fetch_bytes(self, url: str) -> bytes:
		if self._fetch is not None:
			return self._fetch(url)
		return fetch_asset_bytes(url, self._timeout)

	def load_image(self, url: str) -> ImageReader | None:
		if not url:
			return None
		if url in self._cache:
			return self._cache[url]
		reader: ImageReader | None = None
		try:
			reader = decode_image(self.fetch_bytes(url))
		except IMAGE_LOAD_ERRORS as error:
			logger.warning("Failed to load image %s: %s", url, error)
			self.failures.append(f"image {url}: {error}")
		self._cache[url] = reader
		return reader


@dataclasses.dataclass
class RenderContext:
	record: DataRecord
	collection: OwningCollection | None
	assets: AssetLoader
	base_url: str = ""
	issue_date: datetime.date = dataclasses.field(default_factory=datetime.date.today)
	kind: DocumentKind = DocumentKind.BADGE
	warnings: list[str] = dataclasses.field(default_factory=list)

	def resolve(self, template_string: str) -> str:
		return bc.placeholders.resolve(
			template_string,
			self.record,
			self.collection,
			base_url=self.base_url,
			issue_date=self.issue_date,
		)


#============================================
def parse_hex_color(value: str) -> tuple[float, float, float]:
	"""
	Parse a hex color string into RGB floats.

	Args:
		value: Color string like "#AABBCC" or "AABBCC".

	Returns:
		Tuple of (r, g, b) in 0.0-1.0 range, black when unparseable.
	"""
	if not value:
		return (0.0, 0.0, 0.0)
	digits = value[1:] if value.startswith("#") else value
	if len(digits) != 6:
		return (0.0, 0.0, 0.0)
	try:
		red = int(digits[0:2], 16) / 255.0
		green = int(digits[2:4], 16) / 255.0
		blue = int(digits[4:6], 16) / 255.0
	except ValueError:
		return (0.0, 0.0, 0.0)
	return (red, green, blue)


#============================================
def opacity_to_alpha(opacity: float) -> float:
	"""
	Convert a 0-100 opacity into a 0.0-1.0 alpha.
	"""
	return max(0.0, min(1.0, opacity / 100.0))


#============================================
def map_font_name(weight: str, style: str) -> str:
	"""
	Map element font metadata to a standard PDF font name.

	Args:
		weight: "normal" or "bold".
		style: "normal" or "italic".

	Returns:
		ReportLab font name.
	"""
	is_bold = weight == "bold"
	italic = style == "italic"
	if italic and is_bold:
		return DEFAULT_FONT_BOLD_ITALIC
	if italic:
		return DEFAULT_FONT_ITALIC
	if is_bold:
		return DEFAULT_FONT_BOLD
	return DEFAULT_FONT_REGULAR


#============================================
def compute_text_x(box: Rect, text_width: float, align: str) -> float:
	"""
	Compute the text start x for an alignment.

	Args:
		box: Output text box.
		text_width: Measured advance width.
		align: left, center or right.

	Returns:
		Start x in points.
	"""
	if align == "center":
		return box.x + (box.width - text_width) / 2.0
	if align == "right":
		return box.x + box.width - text_width
	return box.x


#============================================
def draw_text_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a text element, vertically centered in its box.

	Args:
		pdf: ReportLab canvas.
		element: Text element.
		box: Output box in points.
		frame: Badge placement.
		context: Record render context.
	"""
	if not element.content:
		return
	text = bc.placeholders.apply_text_case(context.resolve(element.content), element.text_case)
	font_name = map_font_name(element.font_weight, element.font_style)
	font_size = bc.geometry.scale_length(element.font_size, frame.layout_scale)
	text_width = reportlab.pdfbase.pdfmetrics.stringWidth(text, font_name, font_size)
	text_x = compute_text_x(box, text_width, element.align)
	text_y = box.y + (box.height - font_size) / 2.0
	color = parse_hex_color(element.color or DEFAULT_TEXT_COLOR)
	pdf.setFont(font_name, font_size)
	pdf.setFillColorRGB(color[0], color[1], color[2])
	pdf.drawString(text_x, text_y, text)


#============================================
def draw_shape_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a shape: an optional fill and an independent optional border.

	Args:
		pdf: ReportLab canvas.
		element: Shape element.
		box: Output box in points.
		frame: Badge placement.
		context: Record render context.
	"""
	alpha = opacity_to_alpha(element.opacity)
	fill = element.background_color or element.color
	if fill:
		color = parse_hex_color(fill)
		pdf.saveState()
		pdf.setFillColorRGB(color[0], color[1], color[2])
		pdf.setFillAlpha(alpha)
		pdf.rect(box.x, box.y, box.width, box.height, stroke=0, fill=1)
		pdf.restoreState()
	if element.border_width > 0:
		color = parse_hex_color(element.border_color or DEFAULT_TEXT_COLOR)
		pdf.saveState()
		pdf.setStrokeColorRGB(color[0], color[1], color[2])
		pdf.setStrokeAlpha(alpha)
		pdf.setLineWidth(bc.geometry.scale_length(element.border_width, frame.layout_scale))
		pdf.rect(box.x, box.y, box.width, box.height, stroke=1, fill=0)
		pdf.restoreState()


#============================================
def draw_line_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a line as a thin filled bar centered in a taller hit box.
	"""
	thickness = max(MIN_LINE_THICKNESS, box.height)
	color = parse_hex_color(element.color or DEFAULT_TEXT_COLOR)
	pdf.saveState()
	pdf.setFillColorRGB(color[0], color[1], color[2])
	pdf.setFillAlpha(opacity_to_alpha(element.opacity))
	pdf.rect(box.x, box.y + (box.height - thickness) / 2.0, box.width, thickness, stroke=0, fill=1)
	pdf.restoreState()


#============================================
def draw_image_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a fetched image aspect-fit and centered in its box.

	Fetch or decode failures skip the element.

	Args:
		pdf: ReportLab canvas.
		element: Image element.
		box: Output box in points.
		frame: Badge placement.
		context: Record render context.
	"""
	if not element.image_url:
		return
	image_reader = context.assets.load_image(element.image_url)
	if image_reader is None:
		logger.debug("Skipping image element %s", element.element_id)
		return
	image_width, image_height = image_reader.getSize()
	placed = bc.geometry.fit_centered(box, image_width, image_height)
	pdf.drawImage(
		image_reader,
		placed.x,
		placed.y,
		width=placed.width,
		height=placed.height,
		mask="auto",
	)


#============================================
def build_qr_reader(content: str, target_size: float) -> ImageReader:
	"""
	Render a QR code raster for embedding.

	Args:
		content: Payload to encode.
		target_size: Desired raster edge in pixels.

	Returns:
		ImageReader wrapping a PNG raster.
	"""
	qr_code = qrcode.QRCode(
		error_correction=qrcode.constants.ERROR_CORRECT_M,
		box_size=1,
		border=QR_BORDER,
		image_factory=qrcode.image.pil.PilImage,
	)
	qr_code.add_data(content)
	qr_code.make(fit=True)
	modules = qr_code.modules_count + 2 * QR_BORDER
	qr_code.box_size = max(1, int(round(target_size / modules)))
	image = qr_code.make_image(fill_color="black", back_color="white")
	buffer = io.BytesIO()
	image.save(buffer, format="PNG")
	buffer.seek(0)
	return ImageReader(buffer)


#============================================
def draw_qr_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a QR code as the largest centered square in its box.

	Args:
		pdf: ReportLab canvas.
		element: QR element.
		box: Output box in points.
		frame: Badge placement.
		context: Record render context.
	"""
	content = context.resolve(element.content or DEFAULT_QR_CONTENT[context.kind])
	try:
		qr_reader = build_qr_reader(content, box.width * QR_OVERSAMPLE)
	except (qrcode.exceptions.DataOverflowError, ValueError) as error:
		logger.warning("Failed to generate QR code for %s: %s", context.record.record_id, error)
		context.warnings.append(f"{context.record.record_id}: QR element skipped ({error})")
		return
	square = bc.geometry.centered_square(box)
	pdf.drawImage(qr_reader, square.x, square.y, width=square.width, height=square.height)


#============================================
def barcode_bar_pattern(content: str) -> list[bool]:
	"""
	Compute the decorative bar pattern for barcode content.

	This is a visual stand-in, not a scannable symbology: a bar is drawn at
	every even index and wherever the cycled character's code point is even.

	Args:
		content: Resolved barcode text.

	Returns:
		Bar presence per slot.
	"""
	slots = len(content) * 2 + BARCODE_QUIET_BARS
	pattern: list[bool] = []
	for index in range(slots):
		code_point_even = bool(content) and ord(content[index % len(content)]) % 2 == 0
		pattern.append(index % 2 == 0 or code_point_even)
	return pattern


#============================================
def draw_barcode_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw the barcode approximation with its content as a caption.

	Args:
		pdf: ReportLab canvas.
		element: Barcode element.
		box: Output box in points.
		frame: Badge placement.
		context: Record render context.
	"""
	if not element.content:
		return
	content = context.resolve(element.content)
	pdf.setFillColorRGB(1.0, 1.0, 1.0)
	pdf.rect(box.x, box.y, box.width, box.height, stroke=0, fill=1)

	pattern = barcode_bar_pattern(content)
	bar_width = box.width / len(pattern)
	pdf.setFillColorRGB(0.0, 0.0, 0.0)
	for index, has_bar in enumerate(pattern):
		if not has_bar:
			continue
		pdf.rect(
			box.x + index * bar_width,
			box.y + box.height * 0.2,
			bar_width * 0.8,
			box.height * 0.6,
			stroke=0,
			fill=1,
		)

	font_size = min(box.height * BARCODE_TEXT_RATIO, BARCODE_MAX_TEXT_SIZE) * frame.layout_scale
	if font_size <= 0:
		return
	text_width = reportlab.pdfbase.pdfmetrics.stringWidth(content, DEFAULT_FONT_REGULAR, font_size)
	color = parse_hex_color(element.color or DEFAULT_TEXT_COLOR)
	pdf.setFont(DEFAULT_FONT_REGULAR, font_size)
	pdf.setFillColorRGB(color[0], color[1], color[2])
	pdf.drawString(box.x + (box.width - text_width) / 2.0, box.y + 2.0, content)


#============================================
def draw_photo_element(
	pdf: Canvas,
	element: Element,
	box: Rect,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw a neutral photo placeholder box.
	"""
	pdf.saveState()
	pdf.setFillColorRGB(PHOTO_FILL_GRAY, PHOTO_FILL_GRAY, PHOTO_FILL_GRAY)
	pdf.setStrokeColorRGB(PHOTO_BORDER_GRAY, PHOTO_BORDER_GRAY, PHOTO_BORDER_GRAY)
	pdf.setLineWidth(PHOTO_BORDER_WIDTH)
	pdf.rect(box.x, box.y, box.width, box.height, stroke=1, fill=1)
	pdf.restoreState()


ElementRenderer = typing.Callable[[Canvas, Element, Rect, BadgeFrame, RenderContext], None]

ELEMENT_RENDERERS: dict[ElementKind, ElementRenderer] = {
	ElementKind.TEXT: draw_text_element,
	ElementKind.SHAPE: draw_shape_element,
	ElementKind.LINE: draw_line_element,
	ElementKind.IMAGE: draw_image_element,
	ElementKind.QR_CODE: draw_qr_element,
	ElementKind.BARCODE: draw_barcode_element,
	ElementKind.PHOTO: draw_photo_element,
}


#============================================
def render_element(
	pdf: Canvas,
	element: Element,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Transform an element into output space and draw it.

	Args:
		pdf: ReportLab canvas.
		element: Element to draw.
		frame: Badge placement.
		context: Record render context.
	"""
	box = bc.geometry.transform_rect(element.x, element.y, element.width, element.height, frame)
	renderer = ELEMENT_RENDERERS[element.kind]
	renderer(pdf, element, box, frame, context)


#============================================
def draw_background(
	pdf: Canvas,
	template: Template,
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw the template background image, or its background color.

	Badges default to a white fill; certificates only fill when the
	template sets a color.

	Args:
		pdf: ReportLab canvas.
		template: Template being rendered.
		frame: Badge placement.
		context: Record render context.
	"""
	area = frame.rect
	background_image = context.assets.load_image(template.background_image_url)
	if background_image is not None:
		pdf.drawImage(background_image, area.x, area.y, width=area.width, height=area.height, mask="auto")
		return
	fill = template.background_color
	if not fill and context.kind is DocumentKind.BADGE:
		fill = DEFAULT_BACKGROUND_COLOR
	if not fill:
		return
	color = parse_hex_color(fill)
	pdf.setFillColorRGB(color[0], color[1], color[2])
	pdf.rect(area.x, area.y, area.width, area.height, stroke=0, fill=1)


#============================================
def render_badge(
	pdf: Canvas,
	template: Template,
	elements: list[Element],
	frame: BadgeFrame,
	context: RenderContext,
) -> None:
	"""
	Draw one badge instance: background first, then elements in paint order.

	Args:
		pdf: ReportLab canvas.
		template: Template being rendered.
		elements: Visible elements sorted by z-index.
		frame: Badge placement.
		context: Record render context.
	"""
	draw_background(pdf, template, frame, context)
	logger.debug(
		"Drawing %d visible elements for record %s",
		len(elements),
		context.record.registration_number or context.record.record_id,
	)
	for element in elements:
		render_element(pdf, element, frame, context)
