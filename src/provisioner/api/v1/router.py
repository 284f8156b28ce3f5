from fastapi import APIRouter

from src.provisioner.api.v1 import admin, tenants

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tenants.router)
api_router.include_router(admin.router)
