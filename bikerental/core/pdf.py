# bikerental/core/pdf.py
"""
PDF export for printable application forms and rental agreements.

HTML is rendered with Jinja2 templates from ``bikerental/templates`` and
converted with xhtml2pdf. Everything here is stateless; conversion runs in a
worker thread so the event loop is not blocked.
"""
import io
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import jinja2
from loguru import logger
from starlette.concurrency import run_in_threadpool
from xhtml2pdf import pisa

from bikerental.core.config import PDF_OUTPUT_DIR, PDF_URL_PREFIX

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

APPLICATION_FORM_TEMPLATE = "application_form.html"
RENTAL_AGREEMENT_TEMPLATE = "rental_agreement.html"

# Empty stand-in for resources the HTML is not allowed to load
BLOCKED_RESOURCE = "data:,"

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(["html"]),
)


class PdfGenerationError(Exception):
    """Raised when HTML cannot be rendered or converted to PDF."""


def long_date(value: Optional[datetime] = None) -> str:
    """Formats a date like 'March 5, 2025'."""
    value = value or datetime.now(timezone.utc)
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def render_template(template_name: str, context: Dict[str, Any]) -> str:
    try:
        return _env.get_template(template_name).render(**context)
    except jinja2.TemplateError as e:
        logger.error(f"Error rendering template '{template_name}': {e}")
        raise PdfGenerationError(f"Error processing document template '{template_name}'.") from e


def resource_link_callback(uri: str, rel: Optional[str] = None) -> str:
    """
    Resolves images and stylesheets referenced by the HTML. Only ``data:`` URIs
    and files inside the template directory are loaded; any other URI becomes
    an empty resource.
    """
    if not uri:
        return BLOCKED_RESOURCE
    uri = str(uri)
    if uri.startswith("data:"):
        return uri
    if not urlparse(uri).scheme:
        path = (TEMPLATE_DIR / uri).resolve()
        if TEMPLATE_DIR in path.parents and path.is_file():
            return str(path)
    logger.warning(f"Blocked PDF resource: {uri}")
    return BLOCKED_RESOURCE


def html_to_pdf(html: str) -> bytes:
    """Converts an HTML document to PDF bytes."""
    buffer = io.BytesIO()
    result = pisa.CreatePDF(src=html, dest=buffer, encoding="utf-8", link_callback=resource_link_callback)
    if result.err:
        logger.error(f"xhtml2pdf reported {result.err} error(s) during conversion.")
        raise PdfGenerationError("Failed to convert document to PDF.")
    return buffer.getvalue()


def render_pdf(template_name: str, context: Dict[str, Any]) -> bytes:
    return html_to_pdf(render_template(template_name, context))


async def html_to_pdf_async(html: str) -> bytes:
    return await run_in_threadpool(html_to_pdf, html)


async def render_pdf_async(template_name: str, context: Dict[str, Any]) -> bytes:
    return await run_in_threadpool(render_pdf, template_name, context)


def save_pdf(pdf_bytes: bytes, prefix: str, owner_id: str, output_dir: Optional[Path] = None) -> str:
    """Writes the PDF under the output directory and returns its public URL."""
    output_dir = Path(output_dir or PDF_OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    file_name = f"{prefix}_{owner_id}_{uuid.uuid4().hex[:12]}.pdf"
    (output_dir / file_name).write_bytes(pdf_bytes)
    logger.info(f"Saved PDF {file_name} ({len(pdf_bytes)} bytes).")
    return f"{PDF_URL_PREFIX}/{file_name}"
