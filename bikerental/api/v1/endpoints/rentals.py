# bikerental/api/v1/endpoints/rentals.py
from datetime import datetime, timezone
from typing import List, Optional, Iterable

from beanie.operators import In
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Request
from fastapi.responses import Response
from loguru import logger

from bikerental.core import config
from bikerental.core.bike_claims import claim_bike, release_bike
from bikerental.core.pdf import RENTAL_AGREEMENT_TEMPLATE, long_date, render_pdf_async
from bikerental.core.rate_limiter import limiter
from bikerental.core.security import get_current_active_user
from bikerental.core.utils import parse_object_id, document_data
from bikerental.db.database import transaction
from bikerental.models.application import Application
from bikerental.models.bike import Bike
from bikerental.models.enum import ApplicationStatus, RentalStatus, UserRole
from bikerental.models.rental import Rental
from bikerental.models.user import User

router = APIRouter(tags=["Rentals"])


def rental_response(rental: Rental, bike: Optional[Bike] = None) -> Rental.Response:
    data = document_data(rental)
    if bike is not None:
        data["bike"] = document_data(bike)
    return Rental.Response.model_validate(data)


async def rentals_with_bikes(rentals: Iterable[Rental]) -> List[Rental.Response]:
    """Embeds each rental's bike, looked up in a single query."""
    rentals = list(rentals)
    bike_ids = list({r.bike_id for r in rentals})
    bikes = await Bike.find(In(Bike.id, bike_ids)).to_list() if bike_ids else []
    bikes_by_id = {b.id: b for b in bikes}
    return [rental_response(r, bikes_by_id.get(r.bike_id)) for r in rentals]


async def get_rental_for_user_or_404(rental_id: str, current_user: User) -> Rental:
    rental = await Rental.get(parse_object_id(rental_id, "rental"))
    if rental is None or (current_user.role != UserRole.ADMIN and rental.user_id != current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rental not found")
    return rental


async def close_rental(
    rental_id: str,
    current_user: User,
    new_status: RentalStatus,
    distance: Optional[float] = None,
) -> Rental:
    """
    ACTIVE -> COMPLETED/CANCELLED for one of the caller's rentals, returning
    the bike to AVAILABLE in the same transaction.
    """
    rental_oid = parse_object_id(rental_id, "rental")
    now_utc = datetime.now(timezone.utc)

    async with transaction() as session:
        rental = await Rental.find_one({"_id": rental_oid}, session=session)
        if rental is None or rental.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rental not found")
        if rental.status != RentalStatus.ACTIVE:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rental is not active")

        update_payload = {"status": new_status.value, "end_time": now_utc, "updated_at": now_utc}
        if new_status == RentalStatus.COMPLETED and distance is not None:
            update_payload["distance"] = distance
            update_payload["carbon_saved"] = round(distance * config.CARBON_SAVED_KG_PER_KM, 3)

        # Conditional on ACTIVE so two concurrent closes cannot both release the bike
        result = await Rental.get_motor_collection().update_one(
            {"_id": rental_oid, "status": RentalStatus.ACTIVE.value},
            {"$set": update_payload},
            session=session,
        )
        if result.modified_count == 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rental is not active")

        await release_bike(rental.bike_id, session=session)

    logger.info(f"Rental {rental_id} of '{current_user.email}' closed as {new_status.value}.")
    return await Rental.get(rental_oid)


# --- POST / --- start a rental
@router.post("", response_model=Rental.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def start_rental(
    request: Request,
    rental_in: Rental.Create = Body(...),
    current_user: User = Depends(get_current_active_user),
):
    """Rent an AVAILABLE bike: the bike becomes RENTED and an ACTIVE rental is recorded."""
    bike_oid = parse_object_id(rental_in.bike_id, "bike")

    if config.REQUIRE_APPROVED_APPLICATION:
        approved = await Application.find_one(
            {"user_id": current_user.id, "status": ApplicationStatus.APPROVED.value}
        )
        if approved is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="An approved application is required to rent a bike",
            )

    now_utc = datetime.now(timezone.utc)
    async with transaction() as session:
        active_rental = await Rental.find_one(
            {"user_id": current_user.id, "status": RentalStatus.ACTIVE.value}, session=session
        )
        if active_rental:
            logger.warning(f"User '{current_user.email}' already has active rental {active_rental.id}.")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You already have an active rental")

        bike = await claim_bike(bike_oid, session=session)
        if bike is None:
            existing = await Bike.find_one({"_id": bike_oid, "is_active": True}, session=session)
            if existing is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bike is not available")

        rental = Rental(
            user_id=current_user.id,
            bike_id=bike.id,
            status=RentalStatus.ACTIVE,
            start_time=now_utc,
            pdf_url=rental_in.pdf_url,
            created_at=now_utc,
            updated_at=now_utc,
        )
        try:
            await rental.insert(session=session)
        except Exception:
            if session is None:
                # No transaction to roll back the claim
                await release_bike(bike.id)
            raise

    logger.info(f"Rental {rental.id} started: user '{current_user.email}', bike {bike.bike_number}.")
    return rental_response(rental, bike)


# --- GET / --- own rentals
@router.get("", response_model=List[Rental.Response])
@limiter.limit("120/minute")
async def read_my_rentals(request: Request, current_user: User = Depends(get_current_active_user)):
    """The caller's rentals, newest first, each with its bike."""
    rentals = await Rental.find(Rental.user_id == current_user.id).sort("-start_time").to_list()
    return await rentals_with_bikes(rentals)


# --- PATCH / --- end or cancel by body
@router.patch("", response_model=Rental.Response)
async def update_rental(
    rental_action: Rental.Action = Body(...),
    current_user: User = Depends(get_current_active_user),
):
    action = rental_action.action.strip().lower()
    if action == "end":
        rental = await close_rental(
            rental_action.rental_id, current_user, RentalStatus.COMPLETED, rental_action.distance
        )
    elif action == "cancel":
        rental = await close_rental(rental_action.rental_id, current_user, RentalStatus.CANCELLED)
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")
    return rental_response(rental, await Bike.get(rental.bike_id))


# --- POST /clear --- complete every active rental of the caller
@router.post("/clear")
async def clear_my_active_rentals(current_user: User = Depends(get_current_active_user)):
    now_utc = datetime.now(timezone.utc)
    async with transaction() as session:
        active_rentals = await Rental.find(
            {"user_id": current_user.id, "status": RentalStatus.ACTIVE.value}, session=session
        ).to_list()
        if active_rentals:
            await Rental.get_motor_collection().update_many(
                {"_id": {"$in": [r.id for r in active_rentals]}, "status": RentalStatus.ACTIVE.value},
                {"$set": {"status": RentalStatus.COMPLETED.value, "end_time": now_utc, "updated_at": now_utc}},
                session=session,
            )
            for rental in active_rentals:
                await release_bike(rental.bike_id, session=session)

    logger.info(f"Cleared {len(active_rentals)} active rentals for '{current_user.email}'.")
    return {"message": f"Cleared {len(active_rentals)} active rentals", "clearedRentals": len(active_rentals)}


# --- GET /active ---
@router.get("/active", response_model=Rental.Response)
async def read_my_active_rental(current_user: User = Depends(get_current_active_user)):
    rental = await Rental.find_one({"user_id": current_user.id, "status": RentalStatus.ACTIVE.value})
    if rental is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active rental")
    return rental_response(rental, await Bike.get(rental.bike_id))


# --- GET /{rental_id} ---
@router.get("/{rental_id}", response_model=Rental.Response)
async def read_rental(rental_id: str = Path(...), current_user: User = Depends(get_current_active_user)):
    rental = await get_rental_for_user_or_404(rental_id, current_user)
    return rental_response(rental, await Bike.get(rental.bike_id))


@router.post("/{rental_id}/end", response_model=Rental.Response)
async def end_rental(
    rental_id: str = Path(...),
    end_data: Optional[Rental.End] = Body(None),
    current_user: User = Depends(get_current_active_user),
):
    distance = end_data.distance if end_data else None
    rental = await close_rental(rental_id, current_user, RentalStatus.COMPLETED, distance)
    return rental_response(rental, await Bike.get(rental.bike_id))


@router.post("/{rental_id}/cancel", response_model=Rental.Response)
async def cancel_rental(rental_id: str = Path(...), current_user: User = Depends(get_current_active_user)):
    rental = await close_rental(rental_id, current_user, RentalStatus.CANCELLED)
    return rental_response(rental, await Bike.get(rental.bike_id))


# --- GET /{rental_id}/agreement --- printable rental agreement
@router.get("/{rental_id}/agreement", response_class=Response)
@limiter.limit("20/minute")
async def download_rental_agreement(
    request: Request,
    rental_id: str = Path(...),
    current_user: User = Depends(get_current_active_user),
):
    rental = await get_rental_for_user_or_404(rental_id, current_user)
    bike = await Bike.get(rental.bike_id)
    renter = current_user if rental.user_id == current_user.id else await User.get(rental.user_id)

    pdf_bytes = await render_pdf_async(RENTAL_AGREEMENT_TEMPLATE, {
        "date": long_date(),
        "rental_id": str(rental.id),
        "renter_name": renter.name if renter else "Unknown",
        "renter_email": renter.email if renter else "",
        "bike_number": bike.bike_number if bike else "Unknown",
        "bike_model": bike.model if bike else "",
        "start_time": rental.start_time.strftime("%Y-%m-%d %H:%M UTC"),
        "end_time": rental.end_time.strftime("%Y-%m-%d %H:%M UTC") if rental.end_time else None,
        "status": RentalStatus(rental.status).value,
        "distance": rental.distance,
        "carbon_saved": rental.carbon_saved,
    })
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="rental_agreement.pdf"'},
    )
