# bikerental/api/v1/endpoints/pdf.py
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status, Body, Request
from fastapi.responses import Response
from loguru import logger

from bikerental.core.pdf import APPLICATION_FORM_TEMPLATE, html_to_pdf_async, long_date, render_pdf_async, save_pdf
from bikerental.core.rate_limiter import limiter
from bikerental.core.security import get_current_active_user
from bikerental.models.base import ApiSchema
from bikerental.models.user import User

router = APIRouter(tags=["PDF"])


class HtmlDocument(ApiSchema):
    html_content: Optional[str] = None


class ApplicationFormFields(ApiSchema):
    full_name: Optional[str] = None
    sr_code: Optional[str] = None
    address: Optional[str] = None
    sex: Optional[str] = None
    program: Optional[str] = None
    gwa: Optional[Union[float, str]] = None


@router.post("/generate-pdf", response_class=Response)
@limiter.limit("20/minute")
async def generate_pdf(
    request: Request,
    document: HtmlDocument = Body(...),
    current_user: User = Depends(get_current_active_user),
):
    """Converts caller-supplied HTML (e.g. a filled rental agreement) to a PDF download."""
    if not document.html_content or not document.html_content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="htmlContent is required")

    pdf_bytes = await html_to_pdf_async(document.html_content)
    logger.info(f"Generated {len(pdf_bytes)}-byte PDF from HTML for '{current_user.email}'.")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="rental_agreement.pdf"'},
    )


@router.post("/generate-application")
@limiter.limit("20/minute")
async def generate_application_form(
    request: Request,
    fields: ApplicationFormFields = Body(...),
    current_user: User = Depends(get_current_active_user),
):
    """Fills the printable application form, stores the PDF and returns its URL."""
    values = fields.model_dump()
    if any(v is None or (isinstance(v, str) and not v.strip()) for v in values.values()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    pdf_bytes = await render_pdf_async(APPLICATION_FORM_TEMPLATE, {**values, "date": long_date()})
    pdf_url = save_pdf(pdf_bytes, "application", str(current_user.id))
    return {"message": "PDF generated and saved successfully!", "pdfUrl": pdf_url}
