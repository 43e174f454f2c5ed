from typing import Optional
import io
import zipfile

import structlog
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from trackhabit.domain.errors import DocumentExtractionError, UnsupportedDocumentError

logger = structlog.get_logger(__name__)

PDF_TYPES = {"application/pdf"}
SPREADSHEET_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}


def _kind(filename: str, content_type: Optional[str]) -> Optional[str]:
    name = (filename or "").lower()
    if content_type in PDF_TYPES or name.endswith(".pdf"):
        return "pdf"
    if content_type in SPREADSHEET_TYPES or name.endswith(".xlsx"):
        return "spreadsheet"
    return None


def extract_pdf_text(data: bytes) -> str:
    """Text of every page, one line per page"""

    try:
        reader = PdfReader(io.BytesIO(data))
        return "".join(f"{page.extract_text() or ''}\n" for page in reader.pages)
    except (PdfReadError, ValueError, KeyError) as e:
        logger.error("PDF extraction failed", error=str(e))
        raise DocumentExtractionError("Unable to read the PDF file") from e


def extract_spreadsheet_text(data: bytes) -> str:
    """First sheet as tab-separated lines"""

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
        logger.error("Spreadsheet extraction failed", error=str(e))
        raise DocumentExtractionError("Unable to read the spreadsheet") from e

    try:
        sheet = workbook.worksheets[0]
        lines = []
        for row in sheet.iter_rows(values_only=True):
            cells = ["" if value is None else str(value) for value in row]
            lines.append("\t".join(cells).rstrip("\t"))
        return "\n".join(lines)
    finally:
        workbook.close()


def extract_document_text(filename: str, content_type: Optional[str], data: bytes) -> str:
    """
    Convert an uploaded PDF or Excel file to plain text

    Raises:
        UnsupportedDocumentError: If the file is neither PDF nor Excel
        DocumentExtractionError: If the file could not be parsed
    """

    kind = _kind(filename, content_type)
    if kind is None:
        raise UnsupportedDocumentError("Unsupported file format. PDF or Excel only.")

    logger.info("Extracting document", filename=filename, kind=kind, size=len(data))

    if kind == "pdf":
        return extract_pdf_text(data)
    return extract_spreadsheet_text(data)
