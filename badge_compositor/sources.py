"""
External collaborators: data source, blob store and activity log.

The engine only talks to these through the protocols below. The JSON and
local-directory implementations back the command line and the tests.
"""

# Standard Library
import dataclasses
import json
import logging
import pathlib
import threading
import typing

# local repo modules
import badge_compositor as bc
import badge_compositor.errors
import badge_compositor.lifecycle
import badge_compositor.template_lib


logger = logging.getLogger(__name__)

Template = bc.template_lib.Template
TemplateState = bc.template_lib.TemplateState
DataRecord = bc.template_lib.DataRecord
OwningCollection = bc.template_lib.OwningCollection


@dataclasses.dataclass
class ActivityEntry:
	action: str
	entity_type: str
	collection_id: str
	collection_name: str
	description: str
	metadata: dict = dataclasses.field(default_factory=dict)


class DataSource(typing.Protocol):
	def get_template(self, template_id: str) -> Template | None: ...

	def get_collection(self, collection_id: str) -> OwningCollection | None: ...

	def fetch_records(self, collection_id: str, record_ids: list[str] | None) -> list[DataRecord]: ...

	def list_templates(self, collection_id: str) -> list[Template]: ...

	def compare_and_set_template_state(
		self,
		template_id: str,
		expected: TemplateState,
		new: TemplateState,
	) -> bool: ...

	def update_record_artifact(
		self,
		record_id: str,
		generated_at: str,
		template_id: str,
		artifact_url: str | None = None,
	) -> None: ...


class BlobStore(typing.Protocol):
	def put(self, key: str, data: bytes, content_type: str) -> None: ...

	def public_url(self, key: str) -> str: ...


class ActivityLog(typing.Protocol):
	def record(self, entry: ActivityEntry) -> None: ...


class JsonDataSource:
	"""
	Data source over a JSON document with "templates", "collections" and
	"records" lists, optionally persisted back to a file after each write.
	"""

	def __init__(self, payload: dict, path: pathlib.Path | None = None):
		self._payload = payload
		self._path = path
		self._lock = threading.Lock()
		for key in ("templates", "collections", "records"):
			self._payload.setdefault(key, [])

	@classmethod
	def from_file(cls, path: pathlib.Path) -> "JsonDataSource":
		with path.open("r", encoding="utf-8") as handle:
			payload = json.load(handle)
		return cls(payload, path)

	@property
	def payload(self) -> dict:
		return self._payload

	def _find(self, key: str, item_id: str) -> dict | None:
		for row in self._payload[key]:
			if str(row.get("id")) == str(item_id):
				return row
		return None

	def _save(self) -> None:
		if self._path is None:
			return
		with self._path.open("w", encoding="utf-8") as handle:
			json.dump(self._payload, handle, indent=2, sort_keys=True)

	def get_template(self, template_id: str) -> Template | None:
		row = self._find("templates", template_id)
		if row is None:
			return None
		return bc.template_lib.parse_template(row)

	def get_collection(self, collection_id: str) -> OwningCollection | None:
		row = self._find("collections", collection_id)
		if row is None:
			return None
		return bc.template_lib.parse_collection(row)

	def fetch_records(self, collection_id: str, record_ids: list[str] | None) -> list[DataRecord]:
		rows = [
			row for row in self._payload["records"]
			if str(row.get("collection_id") or row.get("event_id") or "") == str(collection_id)
		]
		if record_ids is None:
			return [bc.template_lib.parse_record(row) for row in rows]
		by_id = {str(row.get("id")): row for row in rows}
		return [bc.template_lib.parse_record(by_id[str(item)]) for item in record_ids if str(item) in by_id]

	def list_templates(self, collection_id: str) -> list[Template]:
		return [
			bc.template_lib.parse_template(row)
			for row in self._payload["templates"]
			if str(row.get("collection_id") or row.get("event_id") or "") == str(collection_id)
		]

	def compare_and_set_template_state(
		self,
		template_id: str,
		expected: TemplateState,
		new: TemplateState,
	) -> bool:
		with self._lock:
			row = self._find("templates", template_id)
			if row is None:
				return False
			current = bc.template_lib.parse_template(row).state
			if not bc.lifecycle.same_lifecycle_state(current, expected):
				return False
			row["is_locked"] = new.is_locked
			row["locked_at"] = new.locked_at
			row["locked_by"] = new.locked_by
			row["badges_generated_count"] = new.badges_generated_count
			self._save()
		return True

	def update_record_artifact(
		self,
		record_id: str,
		generated_at: str,
		template_id: str,
		artifact_url: str | None = None,
	) -> None:
		with self._lock:
			row = self._find("records", record_id)
			if row is None:
				raise bc.errors.BookkeepingError(f"record {record_id} not found")
			row["badge_generated_at"] = generated_at
			row["badge_template_id"] = template_id
			if artifact_url is not None:
				row["badge_url"] = artifact_url
			self._save()


class LocalBlobStore:
	"""
	Blob store writing under a root directory.
	"""

	def __init__(self, root: pathlib.Path, public_base_url: str = ""):
		self.root = root
		self.public_base_url = public_base_url.rstrip("/")

	def _path_for(self, key: str) -> pathlib.Path:
		relative = pathlib.PurePosixPath(key)
		if relative.is_absolute() or ".." in relative.parts:
			raise bc.errors.BookkeepingError(f"invalid blob key {key!r}")
		return self.root.joinpath(*relative.parts)

	def put(self, key: str, data: bytes, content_type: str) -> None:
		path = self._path_for(key)
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(data)
		logger.info("Stored %s (%s, %d bytes)", key, content_type, len(data))

	def public_url(self, key: str) -> str:
		if self.public_base_url:
			return f"{self.public_base_url}/{key}"
		return self._path_for(key).resolve().as_uri()


class LoggingActivityLog:
	"""
	Activity log that keeps entries in memory and logs each one.
	"""

	def __init__(self):
		self.entries: list[ActivityEntry] = []

	def record(self, entry: ActivityEntry) -> None:
		self.entries.append(entry)
		logger.info("Activity %s/%s: %s", entry.entity_type, entry.action, entry.description)
