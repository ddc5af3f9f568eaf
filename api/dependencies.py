"""
FastAPI dependencies
"""

from typing import AsyncGenerator, Optional
from fastapi import Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.database import async_session_maker
from services.etl_service import ETLService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session for a single request"""
    async with async_session_maker() as session:
        yield session


def get_etl_service(request: Request) -> ETLService:
    """The ETL service created at application startup"""
    service = getattr(request.app.state, "etl_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="ETL service not started")
    return service


async def verify_api_key(x_api_key: Optional[str] = Header(None)):
    """Require X-API-Key when an API key is configured"""
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key")
