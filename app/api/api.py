from fastapi import APIRouter
from app.api.endpoints import whitelist

api_router = APIRouter()

api_router.include_router(whitelist.router)
