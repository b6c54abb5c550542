"""
Storefront — Payment-proof upload route

Answers with the ``{success, data | error}`` envelope the checkout page
expects. The Google access token may come from the cookie set by the Drive
connect flow, an ``Authorization: Bearer`` header or an ``accessToken`` form
field, in that order.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from app.api.deps import get_drive_uploader
from app.core.config import get_settings
from app.gateway.errors import GatewayError
from app.storage.drive import DriveUploader, UploadValidationError

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["upload"])


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def access_token_from(request: Request, form_token: str | None) -> str | None:
    token = request.cookies.get(settings.GOOGLE_TOKEN_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]
    return form_token or None


@router.post("/upload")
async def upload_payment_proof(
    request: Request,
    file: UploadFile | None = File(None),
    access_token: str | None = Form(None, alias="accessToken"),
    uploader: DriveUploader = Depends(get_drive_uploader),
):
    token = access_token_from(request, access_token)
    if not token:
        return _failure("Authentication required. Please connect your Google account.", status.HTTP_401_UNAUTHORIZED)
    if file is None:
        return _failure("No file provided", status.HTTP_400_BAD_REQUEST)

    # One byte past the limit is enough to reject an oversized file.
    content = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    logger.info("Upload request: %s (%s, %d bytes)", file.filename, file.content_type, len(content))

    try:
        uploaded = await uploader.upload(token, file.filename or "", file.content_type, content)
    except UploadValidationError as exc:
        return _failure(str(exc), status.HTTP_400_BAD_REQUEST)
    except GatewayError as exc:
        return _failure(exc.message, status.HTTP_502_BAD_GATEWAY)

    return {"success": True, "data": uploaded.as_dict()}
