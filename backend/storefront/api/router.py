"""API router - includes all endpoint routers."""

from fastapi import APIRouter

from storefront.api.endpoints import auth, health, oauth

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(oauth.router, prefix="/auth/oauth", tags=["OAuth"])
