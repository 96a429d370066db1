# Standard Library
import io

# PIP3 modules
import PIL.Image
import pytest
import requests

# local repo modules
import badge_compositor.geometry as bc_geometry
import badge_compositor.render as render
import badge_compositor.template_lib as template_lib


#============================================
def build_png_bytes(width: int = 40, height: int = 20) -> bytes:
	"""
	Build a small in-memory PNG.
	"""
	image = PIL.Image.new("RGB", (width, height), (200, 30, 30))
	buffer = io.BytesIO()
	image.save(buffer, format="PNG")
	return buffer.getvalue()


#============================================
def test_every_element_kind_has_a_renderer() -> None:
	assert set(render.ELEMENT_RENDERERS) == set(template_lib.ElementKind)


#============================================
def test_parse_hex_color() -> None:
	assert render.parse_hex_color("#ff0000") == (1.0, 0.0, 0.0)
	assert render.parse_hex_color("00ff00") == (0.0, 1.0, 0.0)
	assert render.parse_hex_color("#fff") == (0.0, 0.0, 0.0)
	assert render.parse_hex_color("#zzzzzz") == (0.0, 0.0, 0.0)
	assert render.parse_hex_color("") == (0.0, 0.0, 0.0)


#============================================
def test_map_font_name() -> None:
	assert render.map_font_name("normal", "normal") == "Helvetica"
	assert render.map_font_name("bold", "normal") == "Helvetica-Bold"
	assert render.map_font_name("normal", "italic") == "Helvetica-Oblique"
	assert render.map_font_name("bold", "italic") == "Helvetica-BoldOblique"


#============================================
def test_barcode_pattern_is_deterministic() -> None:
	pattern = render.barcode_bar_pattern("AB")
	assert len(pattern) == 2 * 2 + 10
	# even slots always carry a bar; odd slots follow the cycled character
	# "A" (65, odd) -> no bar, "B" (66, even) -> bar
	assert pattern[0] and pattern[2]
	assert pattern[1] is True
	assert pattern[3] is True
	assert render.barcode_bar_pattern("AA")[1] is False
	assert render.barcode_bar_pattern("AB") == pattern


#============================================
def test_sniff_image_format() -> None:
	assert render.sniff_image_format(build_png_bytes()) == "png"
	assert render.sniff_image_format(b"\xff\xd8\xff\xe0rest") == "jpeg"
	assert render.sniff_image_format(b"GIF89a") is None


#============================================
def test_decode_rejects_unknown_format() -> None:
	with pytest.raises(ValueError):
		render.decode_image(b"GIF89a....")


#============================================
def test_asset_loader_caches_success() -> None:
	calls: list[str] = []

	def fetch(url: str) -> bytes:
		calls.append(url)
		return build_png_bytes(40, 20)

	loader = render.AssetLoader(fetch=fetch)
	first = loader.load_image("https://cdn.test/logo.png")
	second = loader.load_image("https://cdn.test/logo.png")
	assert first is not None
	assert first is second
	assert first.getSize() == (40, 20)
	assert calls == ["https://cdn.test/logo.png"]


#============================================
def test_asset_loader_caches_failure() -> None:
	calls: list[str] = []

	def fetch(url: str) -> bytes:
		calls.append(url)
		raise requests.ConnectionError("unreachable")

	loader = render.AssetLoader(fetch=fetch)
	assert loader.load_image("https://down.test/a.png") is None
	assert loader.load_image("https://down.test/a.png") is None
	assert calls == ["https://down.test/a.png"]
	assert len(loader.failures) == 1


#============================================
def test_asset_loader_reads_local_files(tmp_path) -> None:
	path = tmp_path / "logo.png"
	path.write_bytes(build_png_bytes(10, 10))
	loader = render.AssetLoader()
	assert loader.load_image(str(path)) is not None
	assert loader.load_image(path.as_uri()) is not None
	assert loader.load_image(str(tmp_path / "missing.png")) is None


#============================================
def test_qr_reader_is_square() -> None:
	reader = render.build_qr_reader("https://x.test/v/ABC123", 120.0)
	width, height = reader.getSize()
	assert width == height
	assert width > 0


#============================================
def test_compute_text_x_alignment() -> None:
	box = render.Rect(10.0, 0.0, 100.0, 20.0)
	assert render.compute_text_x(box, 40.0, "left") == 10.0
	assert render.compute_text_x(box, 40.0, "center") == 40.0
	assert render.compute_text_x(box, 40.0, "right") == 70.0


class RecordingCanvas:
	"""
	Canvas stand-in that records rect() calls and ignores state changes.
	"""

	def __init__(self):
		self.rects: list[dict] = []
		self.line_widths: list[float] = []

	def rect(self, x, y, width, height, stroke=1, fill=0) -> None:
		self.rects.append({"x": x, "y": y, "width": width, "height": height, "stroke": stroke, "fill": fill})

	def setLineWidth(self, width) -> None:
		self.line_widths.append(width)

	def __getattr__(self, name):
		return lambda *args, **kwargs: None


#============================================
def build_context() -> render.RenderContext:
	record = template_lib.DataRecord(record_id="r1", registration_number="ASC-001")
	return render.RenderContext(record=record, collection=None, assets=render.AssetLoader())


#============================================
@pytest.mark.parametrize("pixel_height, layout_scale", [(1.0, 0.5), (2.0, 1.0), (20.0, 0.5), (40.0, 1.0)])
def test_line_thickness_is_centered(pixel_height: float, layout_scale: float) -> None:
	"""
	Lines draw max(1, h * 0.75 * scale) thick, centered in the hit box.
	"""
	frame = render.BadgeFrame(offset_x=10.0, offset_y=20.0, width=288.0, height=216.0, layout_scale=layout_scale)
	element = template_lib.Element(kind=template_lib.ElementKind.LINE, x=20.0, y=100.0, width=200.0, height=pixel_height)
	box = bc_geometry.transform_rect(element.x, element.y, element.width, element.height, frame)
	pdf = RecordingCanvas()
	render.draw_line_element(pdf, element, box, frame, build_context())
	assert len(pdf.rects) == 1
	drawn = pdf.rects[0]
	expected = max(1.0, pixel_height * 0.75 * layout_scale)
	assert drawn["height"] == pytest.approx(expected)
	assert drawn["width"] == pytest.approx(box.width)
	assert drawn["y"] + drawn["height"] / 2.0 == pytest.approx(box.center_y)
	assert drawn["fill"] == 1


#============================================
def test_shape_fill_and_border_are_independent() -> None:
	frame = render.BadgeFrame(offset_x=0.0, offset_y=0.0, width=288.0, height=216.0)
	box = render.Rect(10.0, 10.0, 50.0, 30.0)
	context = build_context()

	border_only = template_lib.Element(
		kind=template_lib.ElementKind.SHAPE, x=0.0, y=0.0, width=1.0, height=1.0, border_width=4.0, border_color="#ff0000"
	)
	pdf = RecordingCanvas()
	render.draw_shape_element(pdf, border_only, box, frame, context)
	assert [(rect["stroke"], rect["fill"]) for rect in pdf.rects] == [(1, 0)]
	assert pdf.line_widths == [pytest.approx(3.0)]

	both = template_lib.Element(
		kind=template_lib.ElementKind.SHAPE,
		x=0.0,
		y=0.0,
		width=1.0,
		height=1.0,
		background_color="#00ff00",
		border_width=2.0,
		opacity=50.0,
	)
	pdf = RecordingCanvas()
	render.draw_shape_element(pdf, both, box, frame, context)
	assert [(rect["stroke"], rect["fill"]) for rect in pdf.rects] == [(0, 1), (1, 0)]


#============================================
def test_photo_placeholder_fills_and_strokes_box() -> None:
	frame = render.BadgeFrame(offset_x=0.0, offset_y=0.0, width=288.0, height=216.0)
	box = render.Rect(5.0, 6.0, 70.0, 90.0)
	element = template_lib.Element(kind=template_lib.ElementKind.PHOTO, x=0.0, y=0.0, width=1.0, height=1.0)
	pdf = RecordingCanvas()
	render.draw_photo_element(pdf, element, box, frame, build_context())
	assert pdf.rects == [{"x": 5.0, "y": 6.0, "width": 70.0, "height": 90.0, "stroke": 1, "fill": 1}]


#============================================
def test_barcode_draws_one_rect_per_bar() -> None:
	frame = render.BadgeFrame(offset_x=0.0, offset_y=0.0, width=288.0, height=216.0)
	box = render.Rect(0.0, 0.0, 120.0, 40.0)
	element = template_lib.Element(
		kind=template_lib.ElementKind.BARCODE, x=0.0, y=0.0, width=1.0, height=1.0, content="{{registration_number}}"
	)
	pdf = RecordingCanvas()
	render.draw_barcode_element(pdf, element, box, frame, build_context())
	bars = sum(render.barcode_bar_pattern("ASC-001"))
	# white backing plus one rect per bar
	assert len(pdf.rects) == bars + 1
	assert all(rect["height"] == pytest.approx(24.0) for rect in pdf.rects[1:])
