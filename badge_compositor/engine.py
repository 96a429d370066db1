"""
Generation pipeline: compose the document, then reconcile bookkeeping.

compose_document() only produces bytes. reconcile_generation() performs
the follow-up writes (template lock/counter, record metadata, artifact
storage, activity log); its failures become warnings and never
invalidate a document that was already produced.
"""

# Standard Library
import dataclasses
import datetime
import logging
import typing

# local repo modules
import badge_compositor as bc
import badge_compositor.config
import badge_compositor.emission
import badge_compositor.errors
import badge_compositor.layout
import badge_compositor.lifecycle
import badge_compositor.render
import badge_compositor.sources
import badge_compositor.template_lib


logger = logging.getLogger(__name__)

DocumentKind = bc.config.DocumentKind
Template = bc.template_lib.Template
DataRecord = bc.template_lib.DataRecord
OwningCollection = bc.template_lib.OwningCollection
AssetLoader = bc.render.AssetLoader
RenderContext = bc.render.RenderContext
ActivityEntry = bc.sources.ActivityEntry
DataSource = bc.sources.DataSource
BlobStore = bc.sources.BlobStore
ActivityLog = bc.sources.ActivityLog
RequestValidationError = bc.errors.RequestValidationError
NotFoundError = bc.errors.NotFoundError
TemplateStateConflict = bc.errors.TemplateStateConflict

GRID_LAYOUTS = bc.config.GRID_LAYOUTS
PDF_CONTENT_TYPE = "application/pdf"

ProgressCallback = typing.Callable[[int, int], None]


@dataclasses.dataclass
class GenerationRequest:
	template_id: str
	collection_id: str
	record_ids: list[str] | None = None
	single_record_id: str | None = None
	badges_per_page: int = 1
	store_artifact: bool = False
	kind: DocumentKind = DocumentKind.BADGE
	base_url: str | None = None


@dataclasses.dataclass
class ComposedDocument:
	data: bytes
	page_count: int
	record_count: int
	used_default_layout: bool
	warnings: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class GenerationOutcome:
	request: GenerationRequest
	template: Template
	collection: OwningCollection | None
	records: list[DataRecord]
	document: ComposedDocument
	generated_at: datetime.datetime


@dataclasses.dataclass
class GenerationResult:
	data: bytes
	filename: str
	page_count: int
	record_count: int
	warnings: list[str] = dataclasses.field(default_factory=list)
	artifact_url: str | None = None


#============================================
def validate_request(request: GenerationRequest) -> None:
	"""
	Reject malformed requests before touching the data source.

	Args:
		request: Generation request.
	"""
	if not request.collection_id or not request.template_id:
		raise RequestValidationError("collection id and template id are required")
	if not isinstance(request.kind, DocumentKind):
		raise RequestValidationError(f"unsupported document kind {request.kind!r}")
	if request.badges_per_page not in GRID_LAYOUTS:
		supported = ", ".join(str(count) for count in sorted(GRID_LAYOUTS))
		raise RequestValidationError(
			f"badges per page must be one of {supported}, got {request.badges_per_page}"
		)
	if request.kind is DocumentKind.CERTIFICATE and request.badges_per_page != 1:
		raise RequestValidationError("certificates are always printed one per page")


#============================================
def select_record_ids(request: GenerationRequest) -> list[str] | None:
	"""
	Resolve the record selector into an ordered id list.

	Args:
		request: Generation request.

	Returns:
		Ordered unique ids, or None for every record of the collection.
	"""
	if request.single_record_id:
		return [request.single_record_id]
	if not request.record_ids:
		return None
	ordered: list[str] = []
	seen: set[str] = set()
	for record_id in request.record_ids:
		key = str(record_id)
		if key in seen:
			continue
		seen.add(key)
		ordered.append(key)
	return ordered


#============================================
def order_records(records: list[DataRecord], record_ids: list[str] | None) -> list[DataRecord]:
	"""
	Put fetched records in the requested order and log missing ids.

	Args:
		records: Records returned by the data source.
		record_ids: Requested ids, or None.

	Returns:
		Records in input order.
	"""
	if record_ids is None:
		return list(records)
	by_id = {record.record_id: record for record in records}
	missing = [record_id for record_id in record_ids if record_id not in by_id]
	if missing:
		logger.warning("Skipping %d unknown record ids: %s", len(missing), ", ".join(missing[:10]))
	return [by_id[record_id] for record_id in record_ids if record_id in by_id]


#============================================
def load_inputs(
	request: GenerationRequest,
	data_source: DataSource,
) -> tuple[Template, OwningCollection | None, list[DataRecord]]:
	"""
	Load the template, owning collection and records for a request.

	Args:
		request: Validated generation request.
		data_source: Data source.

	Returns:
		Tuple of (template, collection, records).
	"""
	template = data_source.get_template(request.template_id)
	if template is None:
		raise NotFoundError(f"template {request.template_id} not found")
	collection = data_source.get_collection(request.collection_id)
	if collection is None:
		logger.warning("Collection %s not found; collection tokens resolve empty", request.collection_id)
	record_ids = select_record_ids(request)
	records = order_records(data_source.fetch_records(request.collection_id, record_ids), record_ids)
	if not records:
		raise NotFoundError("no records found")
	return (template, collection, records)


#============================================
def compose_document(
	template: Template,
	records: list[DataRecord],
	collection: OwningCollection | None,
	badges_per_page: int = 1,
	base_url: str = "",
	assets: AssetLoader | None = None,
	issue_date: datetime.date | None = None,
	progress: ProgressCallback | None = None,
) -> ComposedDocument:
	"""
	Render every record against a template into one PDF.

	Args:
		template: Template to render.
		records: Records in output order.
		collection: Owning collection for collection tokens.
		badges_per_page: Grid count (badges only).
		base_url: Verification base URL.
		assets: Asset loader shared by the batch.
		issue_date: Date used for issue-date tokens.
		progress: Optional callback(done, total).

	Returns:
		ComposedDocument.
	"""
	kind = template.kind
	if assets is None:
		assets = AssetLoader()
	if issue_date is None:
		issue_date = datetime.date.today()
	badge_width, badge_height = bc.config.document_size_points(kind, template.size)

	elements = template.elements
	used_default_layout = False
	if not elements and kind is DocumentKind.BADGE:
		logger.warning("Template %r has no elements; using default layout", template.name)
		elements = bc.layout.build_default_elements(badge_width, badge_height)
		used_default_layout = True
	paint_order = bc.template_lib.sort_visible_elements(elements)

	geometry = bc.layout.plan_page_geometry(badge_width, badge_height, badges_per_page)
	logger.info(
		"Rendering %d %ss with template %r (%s, %d per page, scale %.3f)",
		len(records),
		kind.value,
		template.name,
		template.size,
		geometry.badges_per_page,
		geometry.layout_scale,
	)

	emitter = bc.emission.DocumentEmitter(title=template.name)
	warnings: list[str] = []
	pdf = None
	total = len(records)
	for placement in bc.layout.iter_slot_placements(geometry, total):
		if placement.new_page or pdf is None:
			pdf = emitter.start_page(geometry.page_width, geometry.page_height)
		record = records[placement.record_index]
		context = RenderContext(
			record=record,
			collection=collection,
			assets=assets,
			base_url=base_url,
			issue_date=issue_date,
			kind=kind,
			warnings=warnings,
		)
		frame = bc.layout.frame_for_slot(geometry, placement)
		bc.render.render_badge(pdf, template, paint_order, frame, context)
		if progress is not None:
			progress(placement.record_index + 1, total)

	data = emitter.finalize()
	warnings = assets.failures + warnings
	return ComposedDocument(
		data=data,
		page_count=emitter.page_count,
		record_count=total,
		used_default_layout=used_default_layout,
		warnings=warnings,
	)


#============================================
def generate(
	request: GenerationRequest,
	data_source: DataSource,
	assets: AssetLoader | None = None,
	now: datetime.datetime | None = None,
	progress: ProgressCallback | None = None,
) -> GenerationOutcome:
	"""
	Validate, load and compose; no bookkeeping writes happen here.

	Args:
		request: Generation request.
		data_source: Data source.
		assets: Optional asset loader (tests inject a fetch function).
		now: Generation time, defaults to the current UTC time.
		progress: Optional callback(done, total).

	Returns:
		GenerationOutcome.
	"""
	validate_request(request)
	template, collection, records = load_inputs(request, data_source)
	if template.kind is not request.kind:
		logger.warning(
			"Template %s is a %s template but a %s was requested",
			template.template_id,
			template.kind.value,
			request.kind.value,
		)
		template = dataclasses.replace(template, kind=request.kind)
	if now is None:
		now = datetime.datetime.now(datetime.timezone.utc)
	base_url = bc.config.resolve_base_url(request.base_url)
	document = compose_document(
		template,
		records,
		collection,
		badges_per_page=request.badges_per_page,
		base_url=base_url,
		assets=assets,
		issue_date=now.date(),
		progress=progress,
	)
	return GenerationOutcome(
		request=request,
		template=template,
		collection=collection,
		records=records,
		document=document,
		generated_at=now,
	)


#============================================
def update_template_state(outcome: GenerationOutcome, data_source: DataSource) -> None:
	"""
	Lock the template or add to its counter via compare-and-swap.

	Args:
		outcome: Finished generation.
		data_source: Data source.
	"""
	template = outcome.template
	expected = template.state
	new_state = bc.lifecycle.advance_template_state(
		expected,
		len(outcome.records),
		outcome.generated_at,
	)
	if not data_source.compare_and_set_template_state(template.template_id, expected, new_state):
		raise TemplateStateConflict(
			f"template {template.template_id} changed during generation; counter not updated"
		)


#============================================
def build_artifact_key(collection_id: str, record_id: str) -> str:
	"""
	Deterministic storage key for a stored badge.
	"""
	return f"badges/{collection_id}/{record_id}.pdf"


#============================================
def store_artifact(outcome: GenerationOutcome, blob_store: BlobStore) -> str:
	"""
	Persist the document and return its public URL.
	"""
	request = outcome.request
	key = build_artifact_key(request.collection_id, str(request.single_record_id))
	blob_store.put(key, outcome.document.data, PDF_CONTENT_TYPE)
	return blob_store.public_url(key)


#============================================
def build_activity_entry(outcome: GenerationOutcome) -> ActivityEntry:
	"""
	Describe a finished generation for the activity log.
	"""
	kind = outcome.template.kind.value
	count = len(outcome.records)
	if count == 1:
		action = f"generate_{kind}"
		description = f"Generated {kind} for {outcome.records[0].name}"
	else:
		action = "bulk_action"
		description = f"Generated {count} {kind}s"
	collection = outcome.collection
	return ActivityEntry(
		action=action,
		entity_type=kind,
		collection_id=outcome.request.collection_id,
		collection_name=collection.name if collection is not None else "",
		description=description,
		metadata={
			"count": count,
			"templateId": outcome.template.template_id,
			"templateName": outcome.template.name,
		},
	)


#============================================
def reconcile_generation(
	outcome: GenerationOutcome,
	data_source: DataSource,
	blob_store: BlobStore | None = None,
	activity_log: ActivityLog | None = None,
) -> tuple[list[str], str | None]:
	"""
	Run every follow-up write for a finished generation.

	Each step is independent; a failure is logged and reported as a
	warning, and the remaining steps still run.

	Args:
		outcome: Finished generation.
		data_source: Data source.
		blob_store: Blob store for stored badges.
		activity_log: Activity log.

	Returns:
		Tuple of (warnings, artifact_url).
	"""
	warnings: list[str] = []
	artifact_url: str | None = None
	request = outcome.request
	is_badge = outcome.template.kind is DocumentKind.BADGE

	if is_badge:
		try:
			update_template_state(outcome, data_source)
		except Exception as error:
			logger.warning("Template lock/counter update failed: %s", error, exc_info=True)
			warnings.append(f"template state not updated: {error}")

	if is_badge and request.store_artifact and request.single_record_id:
		if blob_store is None:
			warnings.append("artifact not stored: no blob store configured")
		else:
			try:
				artifact_url = store_artifact(outcome, blob_store)
			except Exception as error:
				logger.warning("Failed to store badge: %s", error, exc_info=True)
				warnings.append(f"artifact not stored: {error}")

	if is_badge:
		templates: list[Template] = []
		try:
			templates = data_source.list_templates(request.collection_id)
		except Exception as error:
			logger.warning("Failed to list collection templates: %s", error, exc_info=True)
			warnings.append(f"owning templates not resolved: {error}")
		generated_at = outcome.generated_at.isoformat()
		for record in outcome.records:
			owning_id = bc.lifecycle.resolve_owning_template_id(
				record.ticket_type_id,
				templates,
				outcome.template.template_id,
			)
			url = artifact_url if record.record_id == request.single_record_id else None
			try:
				data_source.update_record_artifact(record.record_id, generated_at, owning_id, url)
			except Exception as error:
				logger.warning("Failed to update badge metadata for %s: %s", record.record_id, error)
				warnings.append(f"record {record.record_id} metadata not updated: {error}")

	if activity_log is not None:
		try:
			activity_log.record(build_activity_entry(outcome))
		except Exception as error:
			logger.warning("Failed to record activity: %s", error, exc_info=True)
			warnings.append(f"activity not recorded: {error}")

	return (warnings, artifact_url)


#============================================
def build_filename(outcome: GenerationOutcome) -> str:
	"""
	Download filename for the generated document.
	"""
	short_name = "event"
	if outcome.collection is not None and outcome.collection.short_name:
		short_name = outcome.collection.short_name
	return f"{outcome.template.kind.value}s-{short_name}.pdf"


#============================================
def run_generation(
	request: GenerationRequest,
	data_source: DataSource,
	blob_store: BlobStore | None = None,
	activity_log: ActivityLog | None = None,
	assets: AssetLoader | None = None,
	now: datetime.datetime | None = None,
	progress: ProgressCallback | None = None,
) -> GenerationResult:
	"""
	Generate a document and reconcile bookkeeping.

	Args:
		request: Generation request.
		data_source: Data source.
		blob_store: Blob store for stored badges.
		activity_log: Activity log.
		assets: Optional asset loader.
		now: Generation time.
		progress: Optional callback(done, total).

	Returns:
		GenerationResult with degraded-element and bookkeeping warnings.
	"""
	outcome = generate(request, data_source, assets=assets, now=now, progress=progress)
	bookkeeping_warnings, artifact_url = reconcile_generation(
		outcome,
		data_source,
		blob_store=blob_store,
		activity_log=activity_log,
	)
	return GenerationResult(
		data=outcome.document.data,
		filename=build_filename(outcome),
		page_count=outcome.document.page_count,
		record_count=outcome.document.record_count,
		warnings=outcome.document.warnings + bookkeeping_warnings,
		artifact_url=artifact_url,
	)
