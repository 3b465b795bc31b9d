# bikerental/api/v1/endpoints/applications.py
from datetime import date, datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Request
from fastapi.responses import Response
from loguru import logger

from bikerental.core.pdf import APPLICATION_FORM_TEMPLATE, long_date, render_pdf_async
from bikerental.core.rate_limiter import limiter
from bikerental.core.security import get_current_active_user
from bikerental.core.utils import parse_object_id, document_data
from bikerental.models.application import Application
from bikerental.models.enum import ApplicationStatus, UserRole, NON_TERMINAL_APPLICATION_STATUSES
from bikerental.models.user import User

router = APIRouter(tags=["Applications"])


def application_response(application: Application) -> Application.Response:
    return Application.Response.model_validate(document_data(application))


async def find_active_application(user_id, session=None):
    """The user's PENDING, UNDER_REVIEW or APPROVED application, if any."""
    return await Application.find_one(
        {"user_id": user_id, "status": {"$in": [s.value for s in NON_TERMINAL_APPLICATION_STATUSES]}},
        session=session,
    )


async def get_application_for_user_or_404(application_id: str, current_user: User) -> Application:
    """Owners see their own applications; admins see any."""
    application = await Application.get(parse_object_id(application_id, "application"))
    if application is None or (
        current_user.role != UserRole.ADMIN and application.user_id != current_user.id
    ):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    return application


@router.post("", response_model=Application.Submitted, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/hour")
async def submit_application(
    request: Request,
    form: Application.Create = Body(...),
    current_user: User = Depends(get_current_active_user),
):
    """Submit a bike-rental application; it starts out PENDING."""
    missing = form.first_missing_field()
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Missing required field: {missing}")

    try:
        date.fromisoformat(form.date_of_birth.strip())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid field: dateOfBirth")

    if await find_active_application(current_user.id):
        logger.warning(f"User '{current_user.email}' already has an active application.")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have an active application. Please wait for it to be processed.",
        )

    now_utc = datetime.now(timezone.utc)
    application = Application(
        user_id=current_user.id,
        **form.model_dump(),
        status=ApplicationStatus.PENDING,
        submitted_at=now_utc,
        updated_at=now_utc,
    )
    await application.insert()
    logger.info(f"Application {application.id} created for user '{current_user.email}'.")

    return Application.Submitted(
        message="Application submitted successfully!",
        application_id=str(application.id),
        status=application.status,
    )


@router.get("", response_model=List[Application.Response])
@limiter.limit("120/minute")
async def read_my_applications(request: Request, current_user: User = Depends(get_current_active_user)):
    """The caller's applications, newest first."""
    applications = await Application.find(
        Application.user_id == current_user.id
    ).sort("-submitted_at").to_list()
    return [application_response(a) for a in applications]


@router.get("/{application_id}", response_model=Application.Response)
async def read_application(
    application_id: str = Path(...),
    current_user: User = Depends(get_current_active_user),
):
    return application_response(await get_application_for_user_or_404(application_id, current_user))


@router.get("/{application_id}/pdf", response_class=Response)
@limiter.limit("20/minute")
async def download_application_pdf(
    request: Request,
    application_id: str = Path(...),
    current_user: User = Depends(get_current_active_user),
):
    """Printable application form for a stored application."""
    application = await get_application_for_user_or_404(application_id, current_user)
    full_name = " ".join(
        part for part in (application.first_name, application.middle_name, application.last_name) if part
    )
    address = ", ".join((
        f"{application.house_no} {application.street_name}", application.barangay,
        application.municipality_city, application.province,
    ))
    pdf_bytes = await render_pdf_async(APPLICATION_FORM_TEMPLATE, {
        "date": long_date(application.submitted_at),
        "full_name": full_name,
        "sr_code": application.sr_code,
        "sex": application.sex,
        "date_of_birth": application.date_of_birth,
        "phone_number": application.phone_number,
        "email": application.email,
        "address": address,
        "program": application.college_program,
        "gwa": application.gwa_last_semester if application.gwa_last_semester is not None else "N/A",
        "extracurricular_activities": application.extracurricular_activities,
        "distance_from_campus": application.distance_from_campus,
        "duration_of_use": application.duration_of_use,
        "monthly_family_income": application.monthly_family_income,
        "status": ApplicationStatus(application.status).value,
    })
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="application_{application.sr_code}.pdf"'},
    )
