"""
Pre-generation checks of a template against the records it will render.
"""

# Standard Library
import dataclasses

# local repo modules
import badge_compositor as bc
import badge_compositor.placeholders
import badge_compositor.template_lib


Template = bc.template_lib.Template
DataRecord = bc.template_lib.DataRecord
ElementKind = bc.template_lib.ElementKind

MAX_EXAMPLES = 3

# (token, record attribute, label)
OPTIONAL_FIELD_CHECKS = (
	("institution", "institution", "institution"),
	("phone", "phone", "phone number"),
	("email", "email", "email"),
)


@dataclasses.dataclass
class ValidationReport:
	valid: bool
	errors: list[str] = dataclasses.field(default_factory=list)
	warnings: list[str] = dataclasses.field(default_factory=list)
	info: list[str] = dataclasses.field(default_factory=list)
	stats: dict = dataclasses.field(default_factory=dict)


#============================================
def collect_template_tokens(template: Template) -> set[str]:
	"""
	Collect every placeholder token used by the template's elements.
	"""
	tokens: set[str] = set()
	for element in template.elements:
		tokens.update(bc.placeholders.find_tokens(element.content))
	return tokens


#============================================
def format_examples(records: list[DataRecord]) -> str:
	labels = [record.registration_number or record.record_id for record in records[:MAX_EXAMPLES]]
	suffix = "..." if len(records) > MAX_EXAMPLES else ""
	return ", ".join(labels) + suffix


#============================================
def validate_generation_inputs(template: Template, records: list[DataRecord]) -> ValidationReport:
	"""
	Report problems that would produce empty or incomplete badges.

	Missing names are errors. Missing institution, phone or email only
	warn when the template actually prints them.

	Args:
		template: Template to render.
		records: Records to render.

	Returns:
		ValidationReport.
	"""
	report = ValidationReport(valid=True)
	tokens = collect_template_tokens(template)

	if not template.elements:
		report.errors.append("Template has no elements")
	else:
		text_elements = [element for element in template.elements if element.kind is ElementKind.TEXT]
		if not any("name" in bc.placeholders.find_tokens(element.content) for element in text_elements):
			report.warnings.append("Template has no text element showing {{name}}")
		if not any(element.kind is ElementKind.QR_CODE for element in template.elements):
			report.warnings.append("Template has no QR code element")

	missing_names = [record for record in records if not record.name.strip()]
	if missing_names:
		report.errors.append(
			f"{len(missing_names)} record(s) missing name: {format_examples(missing_names)}"
		)

	for token, attribute, label in OPTIONAL_FIELD_CHECKS:
		if token not in tokens:
			continue
		missing = [record for record in records if not getattr(record, attribute).strip()]
		if missing:
			report.warnings.append(f"{len(missing)} record(s) missing {label}")

	without_addons = 0
	if "addons" in tokens:
		without_addons = sum(1 for record in records if not record.addons)
		if without_addons:
			report.info.append(f"{without_addons} record(s) have no add-ons")

	report.valid = not report.errors
	report.stats = {
		"total_records": len(records),
		"missing_names": len(missing_names),
		"without_addons": without_addons,
		"template_elements": len(template.elements),
		"template_tokens": sorted(tokens),
	}
	return report
