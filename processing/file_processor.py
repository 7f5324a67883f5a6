"""
File processing for uploaded documents.

This module contains the validation and content extraction logic that
upload actions use before handing a document to the vector store.
"""

import hashlib
import io
import mimetypes
import logging
from enum import Enum
from typing import Optional

# File content extraction imports
import chardet
from PyPDF2 import PdfReader
from docx import Document
from openpyxl import load_workbook
from pptx import Presentation
from bs4 import BeautifulSoup
import markdown

import config
from models.filemetadata import FileMetadata
from models.uploadedfile import UploadedFile

logger = logging.getLogger(__name__)


class ProcessingStatus(Enum):
    """Status of file processing operations."""
    SUCCESS = "success"
    HIDDEN = "hidden"
    LARGE = "large"
    UNSUPPORTED = "unsupported"
    EMPTY = "empty"
    FAILURE = "failure"


class ProcessingError(Exception):
    """Base class for upload processing failures."""
    status = ProcessingStatus.FAILURE


class HiddenFileError(ProcessingError):
    status = ProcessingStatus.HIDDEN


class FileTooLargeError(ProcessingError):
    status = ProcessingStatus.LARGE


class UnsupportedFileError(ProcessingError):
    status = ProcessingStatus.UNSUPPORTED


class EmptyContentError(ProcessingError):
    status = ProcessingStatus.EMPTY


def size_limit_for(extension: str) -> int:
    """Get the upload size limit in bytes for a file extension."""
    if extension == ".pdf":
        return config.SIZE_LIMITS['pdf']
    if extension in config.OFFICE_EXTENSIONS:
        return config.SIZE_LIMITS['office']
    if extension in config.TEXT_EXTENSIONS or extension in config.MARKDOWN_EXTENSIONS:
        return config.SIZE_LIMITS['text']
    return config.SIZE_LIMITS['default']


def status_for(error: Exception) -> ProcessingStatus:
    return getattr(error, "status", ProcessingStatus.FAILURE)


class FileProcessor:
    """
    Turns uploaded files into indexed documents.

    Validation and extraction are pure CPU work on the upload's bytes;
    indexing is delegated to the injected indexer. Every method is
    blocking, so upload actions call them from a worker thread.
    """

    def __init__(self, indexer):
        """
        Initialize the file processor.

        Args:
            indexer: Ingestion service exposing upload(metadata, content) -> id
        """
        self.indexer = indexer
        logger.info("FileProcessor initialized")

    def check_upload(self, upload: UploadedFile):
        """
        Validate an upload before extraction.

        Raises:
            HiddenFileError: Hidden or temporary file name
            UnsupportedFileError: Extension has no extractor
            FileTooLargeError: Upload exceeds the limit for its type
        """
        if upload.name.startswith((".", "__", "~$")):
            raise HiddenFileError(f"Hidden or temporary file: {upload.name}")

        if upload.extension not in config.SUPPORTED_EXTENSIONS and not self._is_text_type(upload):
            raise UnsupportedFileError(f"Unsupported file type: {upload.extension or upload.content_type}")

        limit = size_limit_for(upload.extension)
        if upload.size > limit:
            raise FileTooLargeError(f"{upload.name} is {upload.size:,} bytes (limit {limit:,})")

    def build_metadata(self, upload: UploadedFile) -> FileMetadata:
        """Build index metadata for an upload."""
        content_hash = hashlib.sha256(upload.content).hexdigest()
        return FileMetadata(
            document_id=hashlib.sha256(f"{upload.name}:{content_hash}".encode()).hexdigest(),
            upload_id=upload.id,
            name=upload.name,
            extension=upload.extension,
            size=upload.size,
            mime_type=self._mime_type(upload),
            content_hash=content_hash,
            uploaded_at=upload.received_at.isoformat(),
        )

    def extract_content(self, upload: UploadedFile) -> str:
        """
        Validate an upload and extract its text.

        Raises:
            ProcessingError: Validation failed or no text could be extracted
        """
        self.check_upload(upload)

        content = self._extract_content(upload)
        if not content or not content.strip():
            raise EmptyContentError(f"No text could be extracted from {upload.name}")
        return content

    def index(self, upload: UploadedFile, content: str) -> str:
        """Send extracted content to the indexer and return the document id."""
        metadata = self.build_metadata(upload)
        document_id = self.indexer.upload(metadata, content)
        logger.debug(f"Indexed upload: {upload.name} -> {document_id[:8]}")
        return document_id

    def process(self, upload: UploadedFile) -> str:
        """Validate, extract and index an upload in one call."""
        return self.index(upload, self.extract_content(upload))

    def _mime_type(self, upload: UploadedFile) -> str:
        if upload.content_type and upload.content_type != "application/octet-stream":
            return upload.content_type
        mime_type, _ = mimetypes.guess_type(upload.name)
        return mime_type or "application/octet-stream"

    def _is_text_type(self, upload: UploadedFile) -> bool:
        return self._mime_type(upload).startswith("text/")

    def _extract_content(self, upload: UploadedFile) -> Optional[str]:
        """Extract content from various file types."""
        file_extension = upload.extension
        mime_type = self._mime_type(upload)

        # PDF files
        if mime_type == "application/pdf" or file_extension == ".pdf":
            return self._extract_pdf_content(upload.content)

        # Microsoft Office files
        elif file_extension == ".docx":
            return self._extract_docx_content(upload.content)
        elif file_extension in [".xlsx", ".xlsm"]:
            return self._extract_excel_content(upload.content)
        elif file_extension == ".pptx":
            return self._extract_pptx_content(upload.content)

        # HTML and Markdown
        elif file_extension in config.HTML_EXTENSIONS:
            return self._extract_html_content(upload.content)
        elif file_extension in config.MARKDOWN_EXTENSIONS:
            return self._extract_markdown_content(upload.content)

        # Text files
        elif mime_type.startswith("text/") or file_extension in config.TEXT_EXTENSIONS:
            return self._extract_text_content(upload.content)

        raise UnsupportedFileError(f"Unsupported file type: {mime_type} for {upload.name}")

    def _detect_encoding(self, data: bytes) -> str:
        """Detect text encoding using chardet."""
        result = chardet.detect(data[:32 * 1024])  # First 32KB
        return result['encoding'] or 'utf-8'

    def _extract_text_content(self, data: bytes) -> str:
        """Extract content from text files."""
        encoding = self._detect_encoding(data)
        try:
            return data.decode(encoding, errors='strict')
        except (UnicodeDecodeError, LookupError):
            return data.decode('utf-8', errors='ignore')

    def _extract_pdf_content(self, data: bytes) -> str:
        """Extract text from PDF files."""
        reader = PdfReader(io.BytesIO(data))
        text = ""
        for page in reader.pages:
            text += (page.extract_text() or "") + "\n"
        return text.strip()

    def _extract_docx_content(self, data: bytes) -> str:
        """Extract text from DOCX files."""
        doc = Document(io.BytesIO(data))
        text = ""
        for paragraph in doc.paragraphs:
            text += paragraph.text + "\n"
        return text.strip()

    def _extract_excel_content(self, data: bytes) -> str:
        """Extract text from Excel files."""
        workbook = load_workbook(io.BytesIO(data), data_only=True)
        text = ""
        for sheet_name in workbook.sheetnames:
            sheet = workbook[sheet_name]
            text += f"Sheet: {sheet_name}\n"
            for row in sheet.iter_rows(values_only=True):
                row_text = "\t".join([str(cell) if cell is not None else "" for cell in row])
                if row_text.strip():
                    text += row_text + "\n"
            text += "\n"
        return text.strip()

    def _extract_pptx_content(self, data: bytes) -> str:
        """Extract text from PowerPoint files."""
        prs = Presentation(io.BytesIO(data))
        text = ""
        for slide_num, slide in enumerate(prs.slides, 1):
            text += f"Slide {slide_num}:\n"
            for shape in slide.shapes:
                if hasattr(shape, "text"):
                    text += shape.text + "\n"
            text += "\n"
        return text.strip()

    def _extract_html_content(self, data: bytes) -> str:
        """Extract text from HTML files."""
        soup = BeautifulSoup(self._extract_text_content(data), 'html.parser')
        for script in soup(["script", "style"]):
            script.decompose()

        lines = (line.strip() for line in soup.get_text().splitlines())
        chunks = (phrase.strip() for line in lines for phrase in line.split("  "))
        return '\n'.join(chunk for chunk in chunks if chunk)

    def _extract_markdown_content(self, data: bytes) -> str:
        """Extract text from Markdown files."""
        html = markdown.markdown(self._extract_text_content(data))
        return BeautifulSoup(html, 'html.parser').get_text()
