"""
Shared configuration and constants.
"""

# Standard Library
import dataclasses
import enum
import logging
import os


logger = logging.getLogger(__name__)

TEMPLATE_DPI = 96.0
POINT_DPI = 72.0
DPI_FACTOR = POINT_DPI / TEMPLATE_DPI

# name -> (width, height) in points
BADGE_SIZES = {
	"4x3": (288.0, 216.0),
	"3x4": (216.0, 288.0),
	"4x6": (288.0, 432.0),
	"3.5x2": (252.0, 144.0),
	"A6": (298.0, 420.0),
}
DEFAULT_BADGE_SIZE = "4x3"

CERTIFICATE_SIZES = {
	"A4-landscape": (842.0, 595.0),
	"A4-portrait": (595.0, 842.0),
	"Letter-landscape": (792.0, 612.0),
	"Letter-portrait": (612.0, 792.0),
	"A3-landscape": (1191.0, 842.0),
	"A3-portrait": (842.0, 1191.0),
}
DEFAULT_CERTIFICATE_SIZE = "A4-landscape"

# multi-badge sheets are A4
SHEET_WIDTH = 595.0
SHEET_HEIGHT = 842.0

# badges per page -> (columns, rows)
GRID_LAYOUTS = {
	1: (1, 1),
	2: (1, 2),
	4: (2, 2),
	6: (2, 3),
	8: (2, 4),
}
GRID_MARGIN = 20.0
GRID_FIT_FACTOR = 0.95

DEFAULT_FONT_REGULAR = "Helvetica"
DEFAULT_FONT_BOLD = "Helvetica-Bold"
DEFAULT_FONT_ITALIC = "Helvetica-Oblique"
DEFAULT_FONT_BOLD_ITALIC = "Helvetica-BoldOblique"
DEFAULT_TEXT_SIZE = 14.0
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_BACKGROUND_COLOR = "#ffffff"

BARCODE_MAX_TEXT_SIZE = 12.0
BARCODE_TEXT_RATIO = 0.3
BARCODE_QUIET_BARS = 10
PHOTO_FILL_GRAY = 0.9
PHOTO_BORDER_GRAY = 0.7
PHOTO_BORDER_WIDTH = 1.0
MIN_LINE_THICKNESS = 1.0

QR_OVERSAMPLE = 2.0
QR_BORDER = 1
FETCH_TIMEOUT_SECONDS = 10.0

PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10

PNG_SIGNATURE = b"\x89\x50"
JPEG_SIGNATURE = b"\xff\xd8"

BASE_URL_ENV_VARS = ("BADGE_BASE_URL", "APP_URL")
VERCEL_URL_ENV_VAR = "VERCEL_URL"
DOCUMENT_PRODUCER = "badge-compositor"


class DocumentKind(enum.Enum):
	BADGE = "badge"
	CERTIFICATE = "certificate"


@dataclasses.dataclass(frozen=True)
class PageGeometry:
	page_width: float
	page_height: float
	badge_width: float
	badge_height: float
	columns: int
	rows: int
	margin: float
	layout_scale: float

	@property
	def badges_per_page(self) -> int:
		return self.columns * self.rows

	@property
	def cell_width(self) -> float:
		return (self.page_width - self.margin * 2.0) / self.columns

	@property
	def cell_height(self) -> float:
		return (self.page_height - self.margin * 2.0) / self.rows

	@property
	def scaled_badge_width(self) -> float:
		return self.badge_width * self.layout_scale

	@property
	def scaled_badge_height(self) -> float:
		return self.badge_height * self.layout_scale


@dataclasses.dataclass(frozen=True)
class SlotPlacement:
	record_index: int
	page_index: int
	slot: int
	column: int
	row: int
	offset_x: float
	offset_y: float
	layout_scale: float
	new_page: bool


#============================================
def badge_size_points(size_name: str | None) -> tuple[float, float]:
	"""
	Look up a badge size, falling back to the default size.

	Args:
		size_name: Named badge size like "4x3".

	Returns:
		Tuple of (width, height) in points.
	"""
	if size_name in BADGE_SIZES:
		return BADGE_SIZES[size_name]
	return BADGE_SIZES[DEFAULT_BADGE_SIZE]


#============================================
def certificate_size_points(size_name: str | None) -> tuple[float, float]:
	"""
	Look up a certificate size, falling back to A4 landscape.

	Args:
		size_name: Named certificate size like "A4-portrait".

	Returns:
		Tuple of (width, height) in points.
	"""
	if size_name in CERTIFICATE_SIZES:
		return CERTIFICATE_SIZES[size_name]
	return CERTIFICATE_SIZES[DEFAULT_CERTIFICATE_SIZE]


#============================================
def document_size_points(kind: DocumentKind, size_name: str | None) -> tuple[float, float]:
	"""
	Look up the native page size for a document kind.

	Args:
		kind: Badge or certificate.
		size_name: Named size from the template.

	Returns:
		Tuple of (width, height) in points.
	"""
	if kind is DocumentKind.CERTIFICATE:
		return certificate_size_points(size_name)
	return badge_size_points(size_name)


#============================================
def points_to_pixels(value: float) -> float:
	"""
	Convert points to template pixels.

	Args:
		value: Points value.

	Returns:
		Pixel value at the template DPI.
	"""
	return value / DPI_FACTOR


#============================================
def resolve_base_url(explicit: str | None = None) -> str:
	"""
	Resolve the base URL used for verification links.

	Args:
		explicit: Caller supplied base URL, wins when set.

	Returns:
		Base URL without a trailing slash, or "" when unconfigured.
	"""
	if explicit:
		return explicit.rstrip("/")
	for name in BASE_URL_ENV_VARS:
		value = os.environ.get(name, "").strip()
		if value:
			return value.rstrip("/")
	vercel_host = os.environ.get(VERCEL_URL_ENV_VAR, "").strip()
	if vercel_host:
		return f"https://{vercel_host}".rstrip("/")
	logger.warning("No verification base URL configured; using relative paths")
	return ""
