"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from functools import lru_cache, partial
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_admin.config import Settings, get_settings
from payroll_admin.database import get_session
from payroll_admin.notifications import (
    EmailConfigurationError,
    EmailSender,
    email_sender_from_settings,
)
from payroll_admin.services.payslip_service import BrowserLauncher
from payroll_admin.storage import PayslipStorage, S3PayslipStorage


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with get_session() as session:
        yield session


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> str:
    """Identity of the caller, set by the upstream gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id.strip()


def get_app_settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=4)
def _storage_for(settings: Settings) -> S3PayslipStorage:
    return S3PayslipStorage.from_settings(settings)


def get_payslip_storage(
    settings: Annotated[Settings, Depends(get_app_settings)]
) -> PayslipStorage:
    """Object storage for generated payslips."""
    return _storage_for(settings)


def get_browser_launcher(
    settings: Annotated[Settings, Depends(get_app_settings)]
) -> BrowserLauncher:
    """Headless browser launcher for the primary PDF backend."""
    from payroll_admin.renderers.browser import launch_browser

    return partial(launch_browser, timeout_ms=settings.browser_launch_timeout_ms)


def get_email_sender(
    settings: Annotated[Settings, Depends(get_app_settings)]
) -> EmailSender:
    """Configured email provider for payslip notifications."""
    try:
        return email_sender_from_settings(settings)
    except EmailConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Email provider not configured: {e}",
        )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
UserId = Annotated[str, Depends(get_user_id)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Storage = Annotated[PayslipStorage, Depends(get_payslip_storage)]
Launcher = Annotated[BrowserLauncher, Depends(get_browser_launcher)]
Mailer = Annotated[EmailSender, Depends(get_email_sender)]
