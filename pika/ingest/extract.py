import io
from dataclasses import dataclass
from pathlib import PurePath

import docx
import pdfplumber

from pika.errors import UnsupportedFileTypeError


@dataclass(frozen=True)
class ExtractedText:
    file_name: str
    file_type: str  # "pdf" | "docx" | "txt"
    text: str


def file_extension(name: str) -> str:
    return PurePath(name or "").suffix.lstrip(".").lower()


def extract_pdf_text(data: bytes) -> str:
    """Text of every page, pages separated by a blank line."""
    pages = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                pages.append(text.strip())
    return "\n\n".join(pages)


def extract_docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs)


def extract_text(file_name: str, data: bytes) -> ExtractedText:
    """
    Pull plain text out of an uploaded syllabus.

    Raises:
        UnsupportedFileTypeError: extension is not pdf, docx or txt
    """
    ext = file_extension(file_name)
    if ext == "pdf":
        text = extract_pdf_text(data)
    elif ext == "docx":
        text = extract_docx_text(data)
    elif ext == "txt":
        text = data.decode("utf-8", errors="replace")
    else:
        raise UnsupportedFileTypeError("Unsupported file type. Please upload a PDF, DOCX or TXT file.")
    return ExtractedText(file_name=file_name, file_type=ext, text=text)
