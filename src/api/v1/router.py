from fastapi import APIRouter

from src.api.v1.endpoints import billing, config, subscription, tenants

api_router = APIRouter()

api_router.include_router(config.router)
api_router.include_router(subscription.router)
api_router.include_router(billing.router)
api_router.include_router(tenants.router)
