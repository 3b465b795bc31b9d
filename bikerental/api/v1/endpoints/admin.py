# bikerental/api/v1/endpoints/admin.py
from datetime import datetime, timezone
from typing import List, Optional

from beanie.operators import In
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
from loguru import logger
from pymongo import ReturnDocument

from bikerental.api.v1.endpoints.rentals import rentals_with_bikes
from bikerental.core.rate_limiter import limiter
from bikerental.core.security import require_admin
from bikerental.core.utils import parse_object_id, document_data
from bikerental.models.application import Application
from bikerental.models.bike import Bike
from bikerental.models.enum import ApplicationStatus, BikeStatus, RentalStatus
from bikerental.models.rental import Rental
from bikerental.models.user import User

router = APIRouter(
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


async def review_application(application_id: str, review: Application.Review, admin: User) -> Application:
    """
    Overwrites the application's status and stamps the reviewer. Any status may
    follow any other; admins can reopen or re-decide an application.
    """
    application_oid = parse_object_id(application_id, "application")
    now_utc = datetime.now(timezone.utc)
    new_status = ApplicationStatus(review.status)

    update_payload = {
        "status": new_status.value,
        "reviewed_at": now_utc,
        "reviewed_by": admin.id,
        "updated_at": now_utc,
    }
    if review.notes is not None:
        update_payload["notes"] = review.notes

    raw_application = await Application.get_motor_collection().find_one_and_update(
        {"_id": application_oid},
        {"$set": update_payload},
        return_document=ReturnDocument.AFTER,
    )
    if raw_application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    logger.info(f"Admin '{admin.email}' set application {application_id} to {new_status.value}.")
    return Application.model_validate(raw_application)


async def with_submitters(applications: List[Application]) -> List[Application.AdminResponse]:
    user_ids = list({a.user_id for a in applications})
    users = await User.find(In(User.id, user_ids)).to_list() if user_ids else []
    users_by_id = {u.id: u for u in users}

    response_list: List[Application.AdminResponse] = []
    for application in applications:
        data = document_data(application)
        submitter = users_by_id.get(application.user_id)
        if submitter is not None:
            data["user"] = {"email": submitter.email, "name": submitter.name}
        response_list.append(Application.AdminResponse.model_validate(data))
    return response_list


@router.get("/applications", response_model=List[Application.AdminResponse])
@limiter.limit("120/minute")
async def read_all_applications(
    request: Request,
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """All applications, newest first, with the submitter's email and name."""
    query = {}
    if status_filter:
        query["status"] = ApplicationStatus(status_filter).value
    applications = await Application.find(query, skip=skip, limit=limit).sort("-submitted_at").to_list()
    return await with_submitters(applications)


@router.post("/applications", response_model=Application.AdminResponse)
async def review_application_by_body(
    review: Application.AdminReview = Body(...),
    current_user: User = Depends(require_admin),
):
    application = await review_application(review.application_id, review, current_user)
    return (await with_submitters([application]))[0]


@router.patch("/applications/{application_id}", response_model=Application.AdminResponse)
async def review_application_by_path(
    application_id: str = Path(...),
    review: Application.Review = Body(...),
    current_user: User = Depends(require_admin),
):
    application = await review_application(application_id, review, current_user)
    return (await with_submitters([application]))[0]


@router.get("/rentals", response_model=List[Rental.Response])
@limiter.limit("120/minute")
async def read_all_rentals(
    request: Request,
    status_filter: Optional[RentalStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    query = {}
    if status_filter:
        query["status"] = RentalStatus(status_filter).value
    rentals = await Rental.find(query, skip=skip, limit=limit).sort("-start_time").to_list()
    return await rentals_with_bikes(rentals)


@router.get("/stats")
async def read_dashboard_stats():
    """Counts shown in the admin dashboard header."""
    applications = {
        s.value: await Application.find({"status": s.value}).count() for s in ApplicationStatus
    }
    bikes = {
        s.value: await Bike.find({"status": s.value, "is_active": True}).count() for s in BikeStatus
    }
    active_rentals = await Rental.find({"status": RentalStatus.ACTIVE.value}).count()
    return {"applications": applications, "bikes": bikes, "activeRentals": active_rentals}
