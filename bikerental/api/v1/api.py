# bikerental/api/v1/api.py
from fastapi import APIRouter

from bikerental.api.v1.endpoints import auth, applications, admin, bikes, rentals, pdf

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth.router, prefix="/auth")
api_router_v1.include_router(applications.router, prefix="/applications")
api_router_v1.include_router(bikes.router, prefix="/bikes")
api_router_v1.include_router(rentals.router, prefix="/rentals")
api_router_v1.include_router(admin.router, prefix="/admin")
api_router_v1.include_router(pdf.router)
