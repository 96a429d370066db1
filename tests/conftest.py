"""
Pytest configuration for local imports and shared payload builders.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()


#============================================
def build_payload() -> dict:
	"""
	Build a small data file payload: one collection, two templates, three records.
	"""
	return {
		"collections": [
			{
				"id": "ev1",
				"name": "Annual Surgery Congress",
				"short_name": "ASC26",
				"start_date": "2026-03-05",
				"end_date": "2026-03-07",
			},
		],
		"templates": [
			{
				"id": "t1",
				"collection_id": "ev1",
				"name": "Delegate badge",
				"size": "4x3",
				"is_default": True,
				"template_data": {
					"backgroundColor": "#ffffff",
					"elements": [
						{
							"id": "name",
							"type": "text",
							"x": 20,
							"y": 40,
							"width": 248,
							"height": 50,
							"content": "{{name}}",
							"fontSize": 20,
							"fontWeight": "bold",
							"textCase": "uppercase",
							"align": "center",
							"zIndex": 2,
						},
						{
							"id": "qr",
							"type": "qr_code",
							"x": 144,
							"y": 150,
							"width": 80,
							"height": 80,
							"content": "{{checkin_url}}",
							"zIndex": 1,
						},
					],
				},
			},
			{
				"id": "t2",
				"collection_id": "ev1",
				"name": "Faculty badge",
				"size": "4x3",
				"ticket_type_ids": ["tt-faculty"],
				"template_data": {"elements": []},
			},
		],
		"records": [
			{
				"id": "r1",
				"collection_id": "ev1",
				"registration_number": "ASC-001",
				"attendee_name": "Dr Test Speaker",
				"attendee_email": "speaker@example.test",
				"attendee_institution": "City Hospital",
				"ticket_type_id": "tt-faculty",
				"ticket_type_name": "Faculty",
				"checkin_token": "ABC123",
			},
			{
				"id": "r2",
				"collection_id": "ev1",
				"registration_number": "ASC-002",
				"attendee_name": "Asha Rao",
				"ticket_type_id": "tt-delegate",
				"ticket_type_name": "Delegate",
				"checkin_token": "DEF456",
				"registration_addons": [{"addons": {"name": "Workshop A"}}],
			},
			{
				"id": "r3",
				"collection_id": "ev1",
				"registration_number": "ASC-003",
				"attendee_name": "Lee Chen",
				"ticket_type_name": "Delegate",
			},
		],
	}


@pytest.fixture
def payload() -> dict:
	return build_payload()
