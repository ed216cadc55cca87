"""
Normalization Service for Bill Text Extraction
===============================================
Turns PDF bills into logical text: PyMuPDF yields positioned text spans per
page, which bills.layout regroups into lines.
"""

import os
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

import pymupdf  # PyMuPDF 1.26+ uses pymupdf, not fitz

from .layout import LINE_TOLERANCE, PositionedFragment, reconstruct_text

logger = logging.getLogger(__name__)

# Horizontal gap (points) between spans on one baseline that reads as a word break
SPAN_GAP = 1.0


@dataclass
class NormalizationResult:
    """Result of file normalization."""
    text: str
    metadata: Dict[str, Any]
    success: bool
    error: Optional[str] = None


class NormalizationService:
    """
    Extracts native PDF text as positioned fragments and rebuilds lines.

    Scanned (image-only) bills are not OCR'd; they come back with empty
    text and the extractors treat them as unrecognized.
    """

    PDF_EXTENSIONS = {'.pdf'}

    def __init__(self, line_tolerance: float = LINE_TOLERANCE):
        """
        Args:
            line_tolerance: Max vertical distance between fragments on one line
        """
        self.line_tolerance = line_tolerance

    def is_supported(self, filename: str) -> bool:
        return os.path.splitext(filename)[1].lower() in self.PDF_EXTENSIONS

    def normalize(self, file_path: str) -> NormalizationResult:
        """
        Normalize a PDF on disk to logical text.

        Args:
            file_path: Path to the PDF

        Returns:
            NormalizationResult with text, metadata, and status
        """
        if not os.path.exists(file_path):
            return NormalizationResult(
                text="",
                metadata={},
                success=False,
                error=f"File not found: {file_path}"
            )

        with open(file_path, "rb") as f:
            data = f.read()
        return self.normalize_bytes(data, os.path.basename(file_path))

    def normalize_bytes(self, data: bytes, filename: str) -> NormalizationResult:
        """
        Normalize raw uploaded bytes.

        Errors from PyMuPDF (corrupt or non-PDF content) are reported in the
        result, never raised, so one bad upload does not stop a batch.
        """
        ext = os.path.splitext(filename)[1].lower()
        if ext not in self.PDF_EXTENSIONS:
            return NormalizationResult(
                text="",
                metadata={"file_size": len(data), "extension": ext},
                success=False,
                error=f"Unsupported file type: {ext or filename}"
            )

        try:
            pages = self.extract_fragments(data)
        except Exception as e:
            logger.exception(f"Error reading PDF {filename}")
            return NormalizationResult(
                text="",
                metadata={"file_size": len(data), "extension": ext},
                success=False,
                error=str(e)
            )

        text = reconstruct_text(pages, self.line_tolerance)
        fragment_count = sum(len(page) for page in pages)
        logger.info(f"PDF {filename}: {len(pages)} pages, {fragment_count} fragments, {len(text)} chars")

        return NormalizationResult(
            text=text,
            metadata={
                "method": "pdf_native",
                "pages": len(pages),
                "file_size": len(data),
                "fragment_count": fragment_count,
                "char_count": len(text.strip()),
            },
            success=True
        )

    def extract_fragments(self, data: bytes) -> List[List[PositionedFragment]]:
        """
        Read every text span of every page, in content order.

        The span baseline (origin y) is the vertical coordinate; pages are
        returned in document order. A span drawn to the right of the previous
        one on the same baseline gets a leading space when neither side
        already has one, so "TOTAL" + "$***9.680,00" in separate columns
        reads "TOTAL $***9.680,00".
        """
        doc = pymupdf.open(stream=data, filetype="pdf")
        try:
            pages = []
            for page in doc:
                fragments = []
                previous = None  # (baseline, right edge, text) of the last span
                content = page.get_text("dict")
                for block in content.get("blocks", []):
                    for line in block.get("lines", []):
                        for span in line.get("spans", []):
                            text = span.get("text", "")
                            if not text:
                                continue
                            baseline = span["origin"][1]
                            left, right = span["bbox"][0], span["bbox"][2]
                            if previous and self._needs_gap(previous, baseline, left, text):
                                text = " " + text
                            fragments.append(PositionedFragment(text=text, y=baseline))
                            previous = (baseline, right, text)
                pages.append(fragments)
            return pages
        finally:
            doc.close()

    def _needs_gap(self, previous, baseline: float, left: float, text: str) -> bool:
        prev_baseline, prev_right, prev_text = previous
        if abs(baseline - prev_baseline) > self.line_tolerance:
            return False
        if left - prev_right < SPAN_GAP:
            return False
        return not (prev_text[-1].isspace() or text[0].isspace())
