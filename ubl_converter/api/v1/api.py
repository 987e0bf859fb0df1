"""
API router aggregation for v1 endpoints
"""
from fastapi import APIRouter

from ubl_converter.api.v1.endpoints import documents
from ubl_converter.core.config import settings

api_router = APIRouter()

api_router.include_router(documents.router)


@api_router.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "UBL Converter API v1",
        "version": settings.VERSION,
        "docs": "/docs"
    }
