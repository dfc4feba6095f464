import logging
import mimetypes
from pathlib import Path
from typing import Optional, Tuple

import httpx
import pydantic

from .errors import RemoteRejection, TransportError, ValidationError
from .gateway import SignedGateway
from .schemas import UploadAuthorization

logger = logging.getLogger(__name__)

UPLOAD_SIGNATURE_PATH = "/api/generate/upload/signature"
ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png")
# the signature endpoint only knows "jpg"
EXTENSION_ALIASES = {"jpeg": "jpg"}


def split_upload_name(filename: str) -> Tuple[str, str]:
    """Return ``(base name, normalized extension)`` for an upload.

    Raises ValidationError when the extension is not an accepted image type.
    """
    name = Path(filename).name
    if "." not in name:
        raise ValidationError(f"File type must be jpg, jpeg or png: {filename!r} has no extension")
    extension = name.rsplit(".", 1)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"File type must be jpg, jpeg or png, got {extension!r}")
    base = name.split(".", 1)[0] or "image"
    return base, EXTENSION_ALIASES.get(extension, extension)


def guess_mime_type(filename: str) -> str:
    mime, _ = mimetypes.guess_type(filename)
    return mime or "application/octet-stream"


class Uploader:
    """Two-step upload: presigned authorization from the API, then a form POST to OSS."""

    def __init__(
        self,
        gateway: SignedGateway,
        client: httpx.AsyncClient,
        *,
        oss_base_url: str,
        upload_proxy: Optional[str] = None,
    ):
        self.gateway = gateway
        self.client = client
        self.oss_base_url = oss_base_url.rstrip("/")
        self.upload_proxy = upload_proxy.rstrip("/") if upload_proxy else None

    async def authorize(self, name: str, extension: str) -> UploadAuthorization:
        data = await self.gateway.call(UPLOAD_SIGNATURE_PATH, {"name": name, "extension": extension})
        try:
            auth = UploadAuthorization.model_validate(data)
        except pydantic.ValidationError as exc:
            raise TransportError(f"Malformed upload authorization: {data!r}") from exc
        logger.info("Obtained upload authorization for key %s", auth.key)
        return auth

    def _destination(self, auth: UploadAuthorization) -> str:
        if self.upload_proxy and auth.post_url.startswith(self.oss_base_url):
            return self.upload_proxy + auth.post_url[len(self.oss_base_url):]
        return auth.post_url

    async def upload(self, file_bytes: bytes, filename: str) -> str:
        """Upload ``file_bytes`` and return the object key it was stored under."""
        base, extension = split_upload_name(filename)
        auth = await self.authorize(base, extension)

        # authorization and file part must agree on the extension
        upload_name = f"{base}.{extension}"
        destination = self._destination(auth)
        try:
            resp = await self.client.post(
                destination,
                data=auth.form_fields(),
                files={"file": (upload_name, file_bytes, guess_mime_type(upload_name))},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Upload to {destination} failed: {exc!r}") from exc

        if not 200 <= resp.status_code < 300:
            raise RemoteRejection(
                f"Upload failed with status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        logger.info("Uploaded %s (%d bytes) as %s", upload_name, len(file_bytes), auth.key)
        return auth.key

    async def upload_file(self, path: str | Path) -> str:
        path = Path(path)
        split_upload_name(path.name)
        return await self.upload(path.read_bytes(), path.name)

    def public_url(self, key: str) -> str:
        return f"{self.oss_base_url}/{key.lstrip('/')}"
