# Standard Library
import datetime

# local repo modules
import badge_compositor.lifecycle as lifecycle
import badge_compositor.template_lib as template_lib


NOW = datetime.datetime(2026, 10, 19, 9, 30, tzinfo=datetime.timezone.utc)


#============================================
def build_template(template_id: str, ticket_type_ids: list[str] | None = None, is_default: bool = False) -> template_lib.Template:
	return template_lib.Template(
		template_id=template_id,
		name=template_id,
		size="4x3",
		ticket_type_ids=ticket_type_ids or [],
		is_default=is_default,
	)


#============================================
def test_first_generation_locks_template() -> None:
	state = template_lib.TemplateState()
	new_state = lifecycle.advance_template_state(state, 25, NOW)
	assert new_state.is_locked
	assert new_state.locked_at == NOW.isoformat()
	assert new_state.locked_by == "system"
	assert new_state.badges_generated_count == 25
	# input left untouched
	assert not state.is_locked


#============================================
def test_locked_template_only_counts() -> None:
	state = template_lib.TemplateState(
		is_locked=True,
		locked_at="2026-01-01T00:00:00+00:00",
		locked_by="admin",
		badges_generated_count=10,
	)
	new_state = lifecycle.advance_template_state(state, 3, NOW)
	assert new_state.is_locked
	assert new_state.locked_at == "2026-01-01T00:00:00+00:00"
	assert new_state.locked_by == "admin"
	assert new_state.badges_generated_count == 13


#============================================
def test_same_lifecycle_state_ignores_stamps() -> None:
	left = template_lib.TemplateState(is_locked=True, locked_at="a", badges_generated_count=4)
	right = template_lib.TemplateState(is_locked=True, locked_at="b", badges_generated_count=4)
	assert lifecycle.same_lifecycle_state(left, right)
	right.badges_generated_count = 5
	assert not lifecycle.same_lifecycle_state(left, right)


#============================================
def test_owning_template_priority() -> None:
	templates = [
		build_template("any-default", ["tt-other"], is_default=True),
		build_template("general-default", is_default=True),
		build_template("faculty", ["tt-faculty"]),
	]
	assert lifecycle.resolve_owning_template_id("tt-faculty", templates, "passed") == "faculty"
	assert lifecycle.resolve_owning_template_id("tt-delegate", templates, "passed") == "general-default"
	assert lifecycle.resolve_owning_template_id(None, templates[:1], "passed") == "any-default"
	assert lifecycle.resolve_owning_template_id("tt-delegate", templates[2:], "passed") == "passed"
	assert lifecycle.resolve_owning_template_id("tt-faculty", [], "passed") == "passed"
