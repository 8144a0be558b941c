from fastapi import APIRouter

from staffid.api.v1.endpoints import employee_id_formats, health, organizations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router)
api_router.include_router(employee_id_formats.router)
api_router.include_router(organizations.router)
