"""
Page accumulation and PDF serialization.
"""

# Standard Library
import io
import logging

# PIP3 modules
import pypdf
import pypdf.errors
import reportlab.pdfgen.canvas

# local repo modules
import badge_compositor as bc
import badge_compositor.config
import badge_compositor.errors


logger = logging.getLogger(__name__)

EmissionError = bc.errors.EmissionError
DOCUMENT_PRODUCER = bc.config.DOCUMENT_PRODUCER


class DocumentEmitter:
	"""
	Collects drawn pages on one canvas and serializes them once.

	Pages are opened with start_page(); the canvas returned is the drawing
	surface for that page. finalize() may be called once.
	"""

	def __init__(self, title: str = ""):
		self.title = title
		self.page_count = 0
		self._buffer = io.BytesIO()
		self._pdf = reportlab.pdfgen.canvas.Canvas(self._buffer)
		self._finalized = False
		if title:
			self._pdf.setTitle(title)

	def start_page(self, width: float, height: float) -> reportlab.pdfgen.canvas.Canvas:
		if self._finalized:
			raise EmissionError("document already finalized")
		if self.page_count > 0:
			self._pdf.showPage()
		self._pdf.setPageSize((width, height))
		self.page_count += 1
		return self._pdf

	def finalize(self) -> bytes:
		"""
		Serialize all pages and verify the result.

		Returns:
			PDF bytes.
		"""
		if self._finalized:
			raise EmissionError("document already finalized")
		if self.page_count == 0:
			raise EmissionError("no pages to emit")
		self._finalized = True
		try:
			self._pdf.save()
			raw = self._buffer.getvalue()
			data = stamp_metadata(raw, self.title)
		except EmissionError:
			raise
		except Exception as error:
			raise EmissionError(f"failed to serialize document: {error}") from error
		verify_page_count(data, self.page_count)
		logger.debug("Emitted %d pages (%d bytes)", self.page_count, len(data))
		return data


#============================================
def stamp_metadata(data: bytes, title: str) -> bytes:
	"""
	Re-write the serialized PDF with document metadata.

	Args:
		data: PDF bytes from the canvas.
		title: Document title.

	Returns:
		PDF bytes.
	"""
	reader = pypdf.PdfReader(io.BytesIO(data))
	writer = pypdf.PdfWriter(clone_from=reader)
	metadata = {"/Producer": DOCUMENT_PRODUCER}
	if title:
		metadata["/Title"] = title
	writer.add_metadata(metadata)
	output = io.BytesIO()
	writer.write(output)
	return output.getvalue()


#============================================
def verify_page_count(data: bytes, expected_pages: int) -> None:
	"""
	Check that the emitted PDF parses and holds every planned page.

	Args:
		data: PDF bytes.
		expected_pages: Pages opened during rendering.
	"""
	try:
		reader = pypdf.PdfReader(io.BytesIO(data))
		actual_pages = len(reader.pages)
	except pypdf.errors.PdfReadError as error:
		raise EmissionError(f"emitted document does not parse: {error}") from error
	if actual_pages != expected_pages:
		raise EmissionError(f"emitted {actual_pages} pages, expected {expected_pages}")
