"""
Error taxonomy for document generation.
"""


class BadgeEngineError(Exception):
	status_code = 500
	code = "engine_error"

	def __init__(self, detail: str, *, status_code: int | None = None):
		super().__init__(detail)
		self.detail = detail
		if status_code is not None:
			self.status_code = status_code


class RequestValidationError(BadgeEngineError):
	"""Missing or unsupported request fields, raised before rendering."""
	status_code = 400
	code = "invalid_request"


class NotFoundError(BadgeEngineError):
	"""The template or every requested record resolved to nothing."""
	status_code = 404
	code = "not_found"


class EmissionError(BadgeEngineError):
	"""Serializing the finished document failed; nothing is returned."""
	code = "emission_failed"


class BookkeepingError(BadgeEngineError):
	"""A follow-up write failed after the document was produced."""
	code = "bookkeeping_failed"


class TemplateStateConflict(BookkeepingError):
	"""The data source rejected a lock/counter compare-and-swap."""
	code = "template_state_conflict"
