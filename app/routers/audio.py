"""
Audio router: upload gate only. Files themselves are stored by the media service.

  GET /audio/upload-permission → {allowed, reason}
"""
from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.otp import UploadPermissionResponse
from app.services.audio_service import check_upload_permission

router = APIRouter()


@router.get("/upload-permission", response_model=UploadPermissionResponse)
def upload_permission(current_user: User = Depends(get_current_user)):
    """Requires an audio_upload OTP verified within the last hour, 2 PM–7 PM IST."""
    permission = check_upload_permission(current_user)
    return UploadPermissionResponse(allowed=permission.allowed, reason=permission.reason)
