"""
Template, element and record models plus payload parsing.
"""

# Standard Library
import dataclasses
import datetime
import enum
import json
import logging

# local repo modules
import badge_compositor as bc
import badge_compositor.config


logger = logging.getLogger(__name__)

DocumentKind = bc.config.DocumentKind
DEFAULT_TEXT_SIZE = bc.config.DEFAULT_TEXT_SIZE


class ElementKind(enum.Enum):
	TEXT = "text"
	SHAPE = "shape"
	LINE = "line"
	IMAGE = "image"
	QR_CODE = "qr_code"
	BARCODE = "barcode"
	PHOTO = "photo"


@dataclasses.dataclass
class Element:
	kind: ElementKind
	x: float
	y: float
	width: float
	height: float
	element_id: str = ""
	visible: bool = True
	z_index: int = 0
	content: str = ""
	font_size: float = DEFAULT_TEXT_SIZE
	font_weight: str = "normal"
	font_style: str = "normal"
	text_case: str = "none"
	color: str = ""
	background_color: str = ""
	align: str = "left"
	image_url: str = ""
	border_width: float = 0.0
	border_color: str = ""
	opacity: float = 100.0


@dataclasses.dataclass
class TemplateState:
	is_locked: bool = False
	locked_at: str | None = None
	locked_by: str | None = None
	badges_generated_count: int = 0


@dataclasses.dataclass
class Template:
	template_id: str
	name: str
	size: str
	kind: DocumentKind = DocumentKind.BADGE
	collection_id: str = ""
	background_color: str = ""
	background_image_url: str = ""
	elements: list[Element] = dataclasses.field(default_factory=list)
	state: TemplateState = dataclasses.field(default_factory=TemplateState)
	ticket_type_ids: list[str] = dataclasses.field(default_factory=list)
	is_default: bool = False


@dataclasses.dataclass
class OwningCollection:
	collection_id: str
	name: str = ""
	short_name: str = ""
	start_date: datetime.date | None = None
	end_date: datetime.date | None = None


@dataclasses.dataclass
class DataRecord:
	record_id: str
	collection_id: str = ""
	registration_number: str = ""
	name: str = ""
	email: str = ""
	phone: str = ""
	institution: str = ""
	designation: str = ""
	ticket_type_id: str | None = None
	ticket_type_name: str = ""
	checkin_token: str = ""
	addons: list[str] = dataclasses.field(default_factory=list)


#============================================
def parse_number(value: object, default_value: float) -> float:
	"""
	Parse a numeric payload value into a float.

	Args:
		value: Raw value (number, numeric string or None).
		default_value: Fallback when parsing fails.

	Returns:
		Parsed float value.
	"""
	if value is None or isinstance(value, bool):
		return default_value
	if isinstance(value, (int, float)):
		return float(value)
	text = str(value).strip()
	if text.endswith("px"):
		text = text[:-2]
	try:
		return float(text)
	except ValueError:
		return default_value


#============================================
def parse_date(value: object) -> datetime.date | None:
	"""
	Parse a date from a date, datetime or ISO 8601 string.

	Args:
		value: Raw value.

	Returns:
		Date or None when missing or unparseable.
	"""
	if value is None or value == "":
		return None
	if isinstance(value, datetime.datetime):
		return value.date()
	if isinstance(value, datetime.date):
		return value
	try:
		return datetime.date.fromisoformat(str(value).strip()[:10])
	except ValueError:
		logger.warning("Ignoring unparseable date %r", value)
		return None


#============================================
def parse_element(payload: dict) -> Element | None:
	"""
	Parse a template element payload.

	Unknown element types are logged and dropped.

	Args:
		payload: Element dictionary using the designer's camelCase keys.

	Returns:
		Element or None if the type is not supported.
	"""
	raw_kind = str(payload.get("type", "")).strip()
	try:
		kind = ElementKind(raw_kind)
	except ValueError:
		logger.warning("Dropping element %r with unsupported type %r", payload.get("id"), raw_kind)
		return None
	z_index = payload.get("zIndex")
	return Element(
		kind=kind,
		x=parse_number(payload.get("x"), 0.0),
		y=parse_number(payload.get("y"), 0.0),
		width=parse_number(payload.get("width"), 0.0),
		height=parse_number(payload.get("height"), 0.0),
		element_id=str(payload.get("id") or ""),
		visible=payload.get("visible") is not False,
		z_index=int(parse_number(z_index, 0.0)),
		content=str(payload.get("content") or ""),
		font_size=parse_number(payload.get("fontSize"), 0.0) or DEFAULT_TEXT_SIZE,
		font_weight=str(payload.get("fontWeight") or "normal"),
		font_style=str(payload.get("fontStyle") or "normal"),
		text_case=str(payload.get("textCase") or "none"),
		color=str(payload.get("color") or ""),
		background_color=str(payload.get("backgroundColor") or ""),
		align=str(payload.get("align") or "left"),
		image_url=str(payload.get("imageUrl") or ""),
		border_width=parse_number(payload.get("borderWidth"), 0.0),
		border_color=str(payload.get("borderColor") or ""),
		opacity=parse_number(payload.get("opacity"), 100.0),
	)


#============================================
def parse_template_data(raw: object) -> dict:
	"""
	Normalize the template_data column, which may arrive as a JSON string.

	Args:
		raw: Dictionary, JSON string or None.

	Returns:
		Template data dictionary.
	"""
	if raw is None:
		return {}
	if isinstance(raw, str):
		try:
			raw = json.loads(raw)
		except json.JSONDecodeError:
			logger.warning("template_data is not valid JSON; treating as empty")
			return {}
	if not isinstance(raw, dict):
		return {}
	return raw


#============================================
def parse_template(payload: dict) -> Template:
	"""
	Parse a stored template row.

	Args:
		payload: Template dictionary.

	Returns:
		Template.
	"""
	template_data = parse_template_data(payload.get("template_data"))
	elements: list[Element] = []
	for element_payload in template_data.get("elements") or []:
		if not isinstance(element_payload, dict):
			continue
		element = parse_element(element_payload)
		if element is not None:
			elements.append(element)
	try:
		kind = DocumentKind(payload.get("kind") or DocumentKind.BADGE.value)
	except ValueError:
		kind = DocumentKind.BADGE
	state = TemplateState(
		is_locked=bool(payload.get("is_locked")),
		locked_at=payload.get("locked_at"),
		locked_by=payload.get("locked_by"),
		badges_generated_count=int(parse_number(payload.get("badges_generated_count"), 0.0)),
	)
	return Template(
		template_id=str(payload["id"]),
		name=str(payload.get("name") or ""),
		size=str(payload.get("size") or ""),
		kind=kind,
		collection_id=str(payload.get("collection_id") or payload.get("event_id") or ""),
		background_color=str(template_data.get("backgroundColor") or ""),
		background_image_url=str(payload.get("template_image_url") or ""),
		elements=elements,
		state=state,
		ticket_type_ids=[str(value) for value in payload.get("ticket_type_ids") or []],
		is_default=bool(payload.get("is_default")),
	)


#============================================
def parse_collection(payload: dict) -> OwningCollection:
	"""
	Parse an owning collection (event) row.

	Args:
		payload: Collection dictionary.

	Returns:
		OwningCollection.
	"""
	return OwningCollection(
		collection_id=str(payload["id"]),
		name=str(payload.get("name") or ""),
		short_name=str(payload.get("short_name") or ""),
		start_date=parse_date(payload.get("start_date")),
		end_date=parse_date(payload.get("end_date")),
	)


#============================================
def collect_addon_names(payload: dict) -> list[str]:
	"""
	Collect purchased add-on names from flat or joined record payloads.

	Args:
		payload: Record dictionary.

	Returns:
		List of non-empty add-on names in payload order.
	"""
	names: list[str] = []
	for entry in payload.get("addons") or []:
		if isinstance(entry, str):
			name = entry
		elif isinstance(entry, dict):
			name = entry.get("name") or ""
		else:
			continue
		if name:
			names.append(str(name))
	for entry in payload.get("registration_addons") or []:
		if not isinstance(entry, dict):
			continue
		addon = entry.get("addons") or {}
		name = addon.get("name") if isinstance(addon, dict) else None
		if name:
			names.append(str(name))
	return names


#============================================
def parse_record(payload: dict) -> DataRecord:
	"""
	Parse a registration row into a DataRecord.

	Args:
		payload: Record dictionary.

	Returns:
		DataRecord.
	"""
	ticket_type_name = payload.get("ticket_type_name")
	if ticket_type_name is None:
		ticket_types = payload.get("ticket_types")
		if isinstance(ticket_types, dict):
			ticket_type_name = ticket_types.get("name")
	ticket_type_id = payload.get("ticket_type_id")
	return DataRecord(
		record_id=str(payload["id"]),
		collection_id=str(payload.get("collection_id") or payload.get("event_id") or ""),
		registration_number=str(payload.get("registration_number") or ""),
		name=str(payload.get("attendee_name") or ""),
		email=str(payload.get("attendee_email") or ""),
		phone=str(payload.get("attendee_phone") or ""),
		institution=str(payload.get("attendee_institution") or ""),
		designation=str(payload.get("attendee_designation") or ""),
		ticket_type_id=str(ticket_type_id) if ticket_type_id else None,
		ticket_type_name=str(ticket_type_name or ""),
		checkin_token=str(payload.get("checkin_token") or ""),
		addons=collect_addon_names(payload),
	)


#============================================
def sort_visible_elements(elements: list[Element]) -> list[Element]:
	"""
	Drop hidden elements and order the rest by z-index.

	sorted() is stable, so ties keep their template order.

	Args:
		elements: Template elements.

	Returns:
		Paint-ordered visible elements.
	"""
	visible = [element for element in elements if element.visible]
	return sorted(visible, key=lambda element: element.z_index)
