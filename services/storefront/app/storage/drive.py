"""
Storefront — Payment-proof upload to Google Drive

Flow:
  1. Validate the file locally (non-empty, ≤ UPLOAD_MAX_BYTES, image type)
  2. Media upload → file id
  3. PATCH metadata (display name, description): failure is only logged
  4. Grant reader/anyone permission: failure is only logged
  5. Return stable public links built from the file id
"""
import logging
import re
from dataclasses import dataclass

import httpx

from app.core.config import get_settings
from app.core.ids import epoch_millis
from app.gateway.errors import GatewayError, TransportError

settings = get_settings()
logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
DEFAULT_CONTENT_TYPE = "image/png"


class UploadValidationError(ValueError):
    """The file was rejected before any network call."""


class UploadError(GatewayError):
    """Google Drive refused or mangled the upload."""

    kind = "upload"


@dataclass(frozen=True)
class UploadedFile:
    id: str
    name: str
    url: str
    web_view_link: str
    thumbnail_link: str

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "webViewLink": self.web_view_link,
            "thumbnailLink": self.thumbnail_link,
        }

    @classmethod
    def for_file_id(cls, file_id: str, name: str) -> "UploadedFile":
        return cls(
            id=file_id,
            name=name,
            url=f"https://drive.google.com/uc?export=view&id={file_id}",
            web_view_link=f"https://drive.google.com/file/d/{file_id}/view",
            thumbnail_link=f"https://drive.google.com/thumbnail?id={file_id}&sz=w1000",
        )


def max_size_label() -> str:
    return f"{settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB"


def validate_upload(filename: str, content_type: str | None, size: int) -> None:
    if size <= 0:
        raise UploadValidationError("File is empty. Please select a valid image file.")
    if size > settings.UPLOAD_MAX_BYTES:
        raise UploadValidationError(f"File size exceeds {max_size_label()} limit")

    has_valid_type = bool(content_type) and content_type in ALLOWED_CONTENT_TYPES
    has_valid_extension = (filename or "").lower().endswith(ALLOWED_EXTENSIONS)
    if not has_valid_type and not has_valid_extension:
        raise UploadValidationError(
            f"Invalid file type. Only images are allowed ({', '.join(ALLOWED_EXTENSIONS)}). "
            f"Received: {content_type or 'unknown'}"
        )


def drive_file_name(filename: str) -> str:
    sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "upload")
    return f"{settings.UPLOAD_FILE_PREFIX}_{epoch_millis()}_{sanitized}"


def _drive_error_message(response: httpx.Response) -> str:
    message = f"Google Drive API error: {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] if response.text else message
    if isinstance(body, dict) and isinstance(body.get("error"), dict) and body["error"].get("message"):
        return str(body["error"]["message"])
    return message


class DriveUploader:
    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    async def upload(
        self,
        access_token: str,
        filename: str,
        content_type: str | None,
        content: bytes,
    ) -> UploadedFile:
        validate_upload(filename, content_type, len(content))

        name = drive_file_name(filename)
        auth_header = {"Authorization": f"Bearer {access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                upload_response = await client.post(
                    settings.GOOGLE_DRIVE_UPLOAD_URL,
                    params={"uploadType": "media"},
                    headers={**auth_header, "Content-Type": content_type or DEFAULT_CONTENT_TYPE},
                    content=content,
                )
                if not upload_response.is_success:
                    logger.error("Google Drive upload failed: HTTP %s", upload_response.status_code)
                    raise UploadError(_drive_error_message(upload_response))

                try:
                    uploaded = upload_response.json()
                except ValueError:
                    raise UploadError("Failed to parse Google Drive response")
                file_id = uploaded.get("id") if isinstance(uploaded, dict) else None
                if not file_id:
                    raise UploadError("Google Drive upload failed: No file ID returned")

                metadata_response = await client.patch(
                    f"{settings.GOOGLE_DRIVE_FILES_URL}/{file_id}",
                    headers=auth_header,
                    json={"name": name, "description": settings.UPLOAD_DESCRIPTION},
                )
                if not metadata_response.is_success:
                    logger.warning("Failed to update metadata for %s, but upload succeeded", file_id)
                else:
                    try:
                        metadata = metadata_response.json()
                    except ValueError:
                        metadata = {}
                    if isinstance(metadata, dict) and metadata.get("name"):
                        name = metadata["name"]

                permission_response = await client.post(
                    f"{settings.GOOGLE_DRIVE_FILES_URL}/{file_id}/permissions",
                    headers=auth_header,
                    json={"role": "reader", "type": "anyone"},
                )
                if not permission_response.is_success:
                    logger.warning("Failed to make %s public, but upload succeeded", file_id)
        except httpx.TimeoutException:
            raise TransportError("Google Drive did not respond in time.")
        except httpx.RequestError as exc:
            raise TransportError(f"Google Drive unreachable: {exc}")

        logger.info("Uploaded payment proof %s as %s", file_id, name)
        return UploadedFile.for_file_id(file_id, name)
