"""Turns uploaded file bytes into plain text."""

import io

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from shared.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
UNSUPPORTED_FILE_MESSAGE = "Unsupported file type. Please upload PDF or text files."


class FileDecoder:
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self.max_upload_bytes = int(helper_config.get_number_val("MAX_UPLOAD_BYTES", default=MAX_UPLOAD_BYTES))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def detect_kind(self, file_name: str, content_type: str | None) -> str:
        """Classify an upload by declared content type or file extension.

        Args:
            file_name (str): The uploaded file's name.
            content_type (str | None): The declared MIME type, if any.

        Returns:
            str: "pdf" or "text".

        Raises:
            ValidationError: If the file is neither a PDF nor a text file.
        """
        content_type = (content_type or "").lower()
        name = (file_name or "").lower()
        if content_type == "application/pdf" or name.endswith(".pdf"):
            return "pdf"
        if content_type.startswith("text/") or name.endswith(".txt"):
            return "text"
        raise ValidationError(UNSUPPORTED_FILE_MESSAGE)

    def check_size(self, size: int | None) -> None:
        """Raises ValidationError if size exceeds MAX_UPLOAD_BYTES. An unknown size (None) passes."""
        if size is not None and size > self.max_upload_bytes:
            raise ValidationError(
                f"File is too large ({size} bytes). The maximum upload size is {self.max_upload_bytes} bytes."
            )

    ##########################################
    ################ DECODE ##################
    ##########################################

    def decode(self, data: bytes, kind: str) -> str:
        """Extract the plain text of an upload.

        Args:
            data (bytes): The raw file content.
            kind (str): "pdf" or "text", as returned by detect_kind().

        Returns:
            str: The extracted text. May be empty, e.g. for scanned PDFs without a text layer.

        Raises:
            ValidationError: If the PDF cannot be parsed or the kind is unknown.
        """
        if kind == "text":
            return data.decode("utf-8", errors="replace")
        if kind == "pdf":
            return self._decode_pdf(data)
        raise ValidationError(UNSUPPORTED_FILE_MESSAGE)

    def _decode_pdf(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError, KeyError, TypeError) as e:
            self.logging.warning("PDF parsing failed: %s", e)
            raise ValidationError(f"Failed to parse PDF: {e}") from e
        self.logging.debug("Extracted text from %d PDF pages.", len(pages))
        return "\n".join(pages)
