"""
CLI entry points for badge and certificate generation.
"""

# Standard Library
import argparse
import logging
import pathlib
import time

# local repo modules
import badge_compositor as bc
import badge_compositor.config
import badge_compositor.engine
import badge_compositor.errors
import badge_compositor.sources
import badge_compositor.validate


DocumentKind = bc.config.DocumentKind
GenerationRequest = bc.engine.GenerationRequest
BadgeEngineError = bc.errors.BadgeEngineError

GRID_LAYOUTS = bc.config.GRID_LAYOUTS
PROGRESS_BAR_WIDTH = bc.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = bc.config.PROGRESS_UPDATE_EVERY


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	if current != total and current % PROGRESS_UPDATE_EVERY != 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	end = "\n" if current == total else "\r"
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end=end)


#============================================
def build_request(args: argparse.Namespace) -> GenerationRequest:
	"""
	Build a generation request from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		GenerationRequest.
	"""
	kind = DocumentKind.CERTIFICATE if args.certificate else DocumentKind.BADGE
	return GenerationRequest(
		template_id=args.template_id,
		collection_id=args.collection_id,
		record_ids=args.record_ids or None,
		single_record_id=args.single_record_id,
		badges_per_page=args.badges_per_page,
		store_artifact=args.store,
		kind=kind,
		base_url=args.base_url,
	)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Generate badge or certificate PDFs from a JSON data file.")
	parser.add_argument("data_path", help="JSON file with templates, collections and records.")

	select_group = parser.add_argument_group("Selection")
	select_group.add_argument("-t", "--template-id", dest="template_id", required=True, help="Template id.")
	select_group.add_argument("-e", "--collection-id", dest="collection_id", required=True, help="Owning collection (event) id.")
	select_group.add_argument(
		"-r",
		"--record-id",
		dest="record_ids",
		action="append",
		default=[],
		help="Record id to include; repeat for several, in output order.",
	)
	select_group.add_argument("-s", "--single-record-id", dest="single_record_id", default=None, help="Generate for one record.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default=None, help="Output PDF path.")
	output_group.add_argument(
		"-b",
		"--badges-per-page",
		dest="badges_per_page",
		type=int,
		choices=sorted(GRID_LAYOUTS),
		default=1,
		help="Badges per printed page.",
	)
	output_group.add_argument("-c", "--certificate", dest="certificate", action="store_true", help="Generate certificates.")
	output_group.add_argument("-u", "--base-url", dest="base_url", default=None, help="Verification base URL.")

	store_group = parser.add_argument_group("Storage")
	store_group.add_argument("--store", dest="store", action="store_true", help="Store a single-record badge in the blob store.")
	store_group.add_argument("--store-dir", dest="store_dir", default="artifacts", help="Blob store root directory.")
	store_group.add_argument("--public-base-url", dest="public_base_url", default="", help="Public URL prefix for stored badges.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument(
		"--validate-only",
		dest="validate_only",
		action="store_true",
		help="Check the template and records without rendering.",
	)
	behavior_group.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Verbose logging.")

	parser.set_defaults(
		certificate=False,
		store=False,
		validate_only=False,
		verbose=False,
	)

	args = parser.parse_args(argv)
	return args


#============================================
def run_validation(args: argparse.Namespace, data_source: bc.sources.JsonDataSource) -> bool:
	"""
	Print a validation report for the selected template and records.

	Args:
		args: Parsed argparse namespace.
		data_source: Loaded data source.

	Returns:
		True when no errors were found.
	"""
	request = build_request(args)
	bc.engine.validate_request(request)
	template, _collection, records = bc.engine.load_inputs(request, data_source)
	report = bc.validate.validate_generation_inputs(template, records)
	print(f"Template: {template.name} ({len(template.elements)} elements)")
	print(f"Records: {len(records)}")
	for message in report.errors:
		print(f"ERROR: {message}")
	for message in report.warnings:
		print(f"WARNING: {message}")
	for message in report.info:
		print(f"INFO: {message}")
	print(f"Valid: {report.valid}")
	return report.valid


#============================================
def run_pipeline(args: argparse.Namespace) -> int:
	"""
	Run generation from a JSON data file to a PDF on disk.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Process exit code.
	"""
	data_path = pathlib.Path(args.data_path)
	print(f"Data file: {data_path}")
	data_source = bc.sources.JsonDataSource.from_file(data_path)

	if args.validate_only:
		return 0 if run_validation(args, data_source) else 1

	request = build_request(args)
	print(f"Document: {request.kind.value}")
	print(f"Badges per page: {request.badges_per_page}")
	blob_store = bc.sources.LocalBlobStore(pathlib.Path(args.store_dir), args.public_base_url)
	activity_log = bc.sources.LoggingActivityLog()

	start_time = time.perf_counter()
	result = bc.engine.run_generation(
		request,
		data_source,
		blob_store=blob_store,
		activity_log=activity_log,
		progress=lambda current, total: print_progress("Rendering", current, total),
	)
	total_time = time.perf_counter() - start_time

	output_path = pathlib.Path(args.output_path or result.filename)
	output_path.write_bytes(result.data)
	print(f"Records rendered: {result.record_count}")
	print(f"Pages written: {result.page_count}")
	print(f"Output PDF: {output_path}")
	if result.artifact_url:
		print(f"Stored badge: {result.artifact_url}")
	for warning in result.warnings:
		print(f"WARNING: {warning}")
	print(f"Timing: total={total_time:.2f}s")
	return 0


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	level = logging.DEBUG if args.verbose else logging.WARNING
	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
	try:
		return run_pipeline(args)
	except BadgeEngineError as error:
		print(f"ERROR ({error.code}): {error.detail}")
		return 1
