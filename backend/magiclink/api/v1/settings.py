"""Admin email template settings endpoints.

Endpoints:
- GET /admin/settings: effective (merged) email template settings
- PUT /admin/settings: overwrite the persisted template layer

Both require the AdminAccess dependency (bearer ADMIN_API_KEY).
"""

from fastapi import APIRouter

from magiclink.api.deps import AdminAccess, SettingsServiceDep
from magiclink.core.responses import DataResponse
from magiclink.schemas.settings import (
    EmailTemplateSettingsResponse,
    EmailTemplateSettingsUpdate,
)

router = APIRouter()


@router.get("/settings")
async def get_email_settings(
    _admin: AdminAccess,
    service: SettingsServiceDep,
) -> DataResponse[EmailTemplateSettingsResponse]:
    """Return the effective email template settings."""
    effective = await service.get_settings()
    return DataResponse(data=EmailTemplateSettingsResponse.from_settings(effective))


@router.put("/settings")
async def update_email_settings(
    _admin: AdminAccess,
    body: EmailTemplateSettingsUpdate,
    service: SettingsServiceDep,
) -> DataResponse[EmailTemplateSettingsResponse]:
    """Store all five template fields and return what was stored.

    The response is the stored layer, not the merged view: an empty field
    here means "fall back" on the next read.
    """
    stored = await service.update_settings(body.to_payload())
    return DataResponse(data=EmailTemplateSettingsResponse.from_settings(stored))
