"""
Template lock state and owning-template resolution.

A template starts unlocked. Its first successful generation locks it,
stamping who and when, and seeds the generated-badges counter with the
batch size. Later generations only add to the counter. Locking is never
undone here.
"""

# Standard Library
import dataclasses
import datetime

# local repo modules
import badge_compositor as bc
import badge_compositor.template_lib


Template = bc.template_lib.Template
TemplateState = bc.template_lib.TemplateState

SYSTEM_LOCKER = "system"


#============================================
def advance_template_state(
	state: TemplateState,
	batch_size: int,
	now: datetime.datetime,
	locked_by: str = SYSTEM_LOCKER,
) -> TemplateState:
	"""
	Compute the template state after a successful generation.

	Args:
		state: State read before generating.
		batch_size: Number of records rendered.
		now: Generation time.
		locked_by: Actor recorded on first lock.

	Returns:
		New TemplateState; the input is not modified.
	"""
	if batch_size < 0:
		raise ValueError("batch_size must be non-negative")
	if not state.is_locked:
		return TemplateState(
			is_locked=True,
			locked_at=now.isoformat(),
			locked_by=locked_by,
			badges_generated_count=batch_size,
		)
	return dataclasses.replace(
		state,
		badges_generated_count=state.badges_generated_count + batch_size,
	)


#============================================
def same_lifecycle_state(left: TemplateState, right: TemplateState) -> bool:
	"""
	Compare the fields a compare-and-swap guards.
	"""
	return (
		left.is_locked == right.is_locked
		and left.badges_generated_count == right.badges_generated_count
	)


#============================================
def resolve_owning_template_id(
	ticket_type_id: str | None,
	templates: list[Template],
	fallback_template_id: str,
) -> str:
	"""
	Pick the template a record's badge belongs to.

	Priority: a template listing the record's ticket type, then a default
	template without ticket types, then any default, then the template
	used for this generation.

	Args:
		ticket_type_id: Record ticket type, may be None.
		templates: All templates of the owning collection.
		fallback_template_id: Template passed to the generation call.

	Returns:
		Template id.
	"""
	if not templates:
		return fallback_template_id
	if ticket_type_id:
		for template in templates:
			if ticket_type_id in template.ticket_type_ids:
				return template.template_id
	for template in templates:
		if template.is_default and not template.ticket_type_ids:
			return template.template_id
	for template in templates:
		if template.is_default:
			return template.template_id
	return fallback_template_id
