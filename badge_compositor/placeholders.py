"""
Placeholder token resolution and text case transforms.
"""

# Standard Library
import datetime
import re
import urllib.parse

# local repo modules
import badge_compositor as bc
import badge_compositor.template_lib


DataRecord = bc.template_lib.DataRecord
OwningCollection = bc.template_lib.OwningCollection

TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")
CAPITALIZE_PATTERN = re.compile(r"(^|[\s.])([a-z])")
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTH_NAMES = (
	"January", "February", "March", "April", "May", "June",
	"July", "August", "September", "October", "November", "December",
)


#============================================
def format_short_date(value: datetime.date, with_year: bool) -> str:
	"""
	Format a date as "5 Mar" or "5 Mar 2026".
	"""
	text = f"{value.day} {MONTH_ABBREVIATIONS[value.month - 1]}"
	if with_year:
		text += f" {value.year}"
	return text


#============================================
def format_long_date(value: datetime.date) -> str:
	"""
	Format a date as "19 October 2026".
	"""
	return f"{value.day} {MONTH_NAMES[value.month - 1]} {value.year}"


#============================================
def format_date_range(start: datetime.date | None, end: datetime.date | None) -> str:
	"""
	Format a collection date range for badges.

	Args:
		start: First day.
		end: Last day.

	Returns:
		"5 Mar - 7 Mar 2026", a single date when both days match, or ""
		when either side is missing.
	"""
	if start is None or end is None:
		return ""
	if start == end:
		return format_short_date(end, with_year=True)
	return f"{format_short_date(start, with_year=False)} - {format_short_date(end, with_year=True)}"


#============================================
def checkin_token_for(record: DataRecord) -> str:
	"""
	Return the record's check-in token, falling back to its registration number.
	"""
	return record.checkin_token or record.registration_number


#============================================
def build_verify_url(base_url: str, token: str) -> str:
	"""
	Build the public verification URL for a token.
	"""
	return f"{base_url}/v/{token}"


#============================================
def build_token_values(
	record: DataRecord,
	collection: OwningCollection | None,
	base_url: str,
	issue_date: datetime.date,
) -> dict[str, str]:
	"""
	Build the token lookup table for one record.

	Args:
		record: Record being rendered.
		collection: Owning collection, may be None.
		base_url: Verification base URL.
		issue_date: Generation date.

	Returns:
		Mapping of token name to substitution text.
	"""
	token = checkin_token_for(record)
	verify_url = build_verify_url(base_url, token)
	registration_path = urllib.parse.quote(record.registration_number, safe="")
	date_range = ""
	collection_name = ""
	if collection is not None:
		date_range = format_date_range(collection.start_date, collection.end_date)
		collection_name = collection.name
	issued = format_long_date(issue_date)
	return {
		"name": record.name,
		"registration_number": record.registration_number,
		"ticket_type": record.ticket_type_name,
		"email": record.email,
		"phone": record.phone,
		"institution": record.institution,
		"designation": record.designation,
		"event_name": collection_name,
		"addons": ", ".join(name for name in record.addons if name),
		"checkin_token": token,
		"checkin_url": verify_url,
		"verify_url": verify_url,
		"verification_url": build_verify_url(base_url, registration_path),
		"event_date": date_range,
		"issue_date": issued,
		"today": issued,
	}


#============================================
def resolve(
	template_string: str,
	record: DataRecord,
	collection: OwningCollection | None,
	base_url: str = "",
	issue_date: datetime.date | None = None,
) -> str:
	"""
	Substitute {{token}} placeholders for a record.

	Unknown tokens resolve to an empty string.

	Args:
		template_string: Text containing placeholder tokens.
		record: Record being rendered.
		collection: Owning collection, may be None.
		base_url: Verification base URL.
		issue_date: Generation date, defaults to today.

	Returns:
		Resolved text.
	"""
	if not template_string:
		return ""
	if issue_date is None:
		issue_date = datetime.date.today()
	values = build_token_values(record, collection, base_url, issue_date)

	def substitute(match: re.Match) -> str:
		return values.get(match.group(1), "")

	return TOKEN_PATTERN.sub(substitute, template_string)


#============================================
def apply_text_case(text: str, text_case: str | None) -> str:
	"""
	Apply a case transform after substitution.

	"capitalize" lowercases first, then uppercases the first letter and
	every letter after whitespace or a period, so "dr.jane" -> "Dr.Jane".

	Args:
		text: Input text.
		text_case: One of none, uppercase, lowercase, capitalize.

	Returns:
		Transformed text.
	"""
	if not text:
		return text
	if text_case == "uppercase":
		return text.upper()
	if text_case == "lowercase":
		return text.lower()
	if text_case == "capitalize":
		return CAPITALIZE_PATTERN.sub(
			lambda match: match.group(1) + match.group(2).upper(),
			text.lower(),
		)
	return text


#============================================
def find_tokens(template_string: str) -> list[str]:
	"""
	List the token names used in a string.
	"""
	return [name for name in TOKEN_PATTERN.findall(template_string or "") if name]
