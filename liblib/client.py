import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx

from . import config
from .errors import LiblibError, ValidationError
from .gateway import SignedGateway
from .generation import JobSubmitter, build_image_to_image_params
from .polling import JobPoller
from .schemas import JobStatus
from .signing import Credentials
from .storage import Uploader

logger = logging.getLogger(__name__)


class LiblibClient:
    """Upload, submit and poll against the LiblibAI open API.

    Settings not passed explicitly fall back to ``liblib.config``. Use as an
    async context manager, or call ``aclose()`` when done. An injected
    ``http_client`` is left open.
    """

    def __init__(
        self,
        access_key: Optional[str] = None,
        secret: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        proxy_url: Optional[str] = None,
        oss_base_url: Optional[str] = None,
        upload_proxy: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        access_key = access_key or config.LIBLIB_ACCESS_KEY
        secret = secret or config.LIBLIB_SECRET_KEY
        if not access_key or not secret:
            raise LiblibError("Missing LIBLIB_ACCESS_KEY or LIBLIB_SECRET_KEY environment variables")

        timeout = timeout or config.LIBLIB_REQUEST_TIMEOUT
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=timeout))
        self.oss_base_url = oss_base_url or config.LIBLIB_OSS_BASE_URL

        self.gateway = SignedGateway(
            self.http,
            Credentials(access_key, secret),
            api_base=api_base or config.LIBLIB_API_BASE,
            proxy_url=config.LIBLIB_PROXY_URL if proxy_url is None else proxy_url,
        )
        self.uploader = Uploader(
            self.gateway,
            self.http,
            oss_base_url=self.oss_base_url,
            upload_proxy=config.LIBLIB_OSS_UPLOAD_PROXY if upload_proxy is None else upload_proxy,
        )
        self.submitter = JobSubmitter(self.gateway, storage_base=self.oss_base_url)
        self.poller = JobPoller(
            self.submitter.get_status,
            max_attempts=max_attempts or config.LIBLIB_MAX_POLLS,
            interval=config.LIBLIB_POLL_INTERVAL if poll_interval is None else poll_interval,
        )

    async def __aenter__(self) -> "LiblibClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def upload_bytes(self, file_bytes: bytes, filename: str) -> str:
        return await self.uploader.upload(file_bytes, filename)

    async def upload_file(self, path: str | Path) -> str:
        return await self.uploader.upload_file(path)

    def image_url(self, key: str) -> str:
        return self.uploader.public_url(key)

    async def run_comfy(self, template_uuid: str, generate_params: Dict[str, Any]) -> str:
        return await self.submitter.submit(template_uuid, generate_params)

    async def get_status(self, generate_uuid: str) -> JobStatus:
        return await self.submitter.get_status(generate_uuid)

    async def wait_for_result(
        self,
        generate_uuid: str,
        *,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        on_status: Optional[Callable[[JobStatus], None]] = None,
    ) -> str:
        return await self.poller.wait(
            generate_uuid,
            max_attempts=max_attempts,
            interval=interval,
            stop_event=stop_event,
            on_status=on_status,
        )

    async def generate_image(
        self,
        image: Any,
        prompt: str,
        *,
        width: int = 1024,
        height: int = 1024,
        template_uuid: Optional[str] = None,
        workflow_uuid: Optional[str] = None,
    ) -> str:
        """Submit the image-to-image app for an uploaded image; returns the generateUuid.

        ``image`` may be an object key, a URL or an upload result dict.
        """
        template_uuid = template_uuid or config.LIBLIB_TEMPLATE_UUID
        workflow_uuid = workflow_uuid or config.LIBLIB_WORKFLOW_UUID
        if not workflow_uuid:
            raise ValidationError("workflow_uuid is required (set LIBLIB_WORKFLOW_UUID)")
        params = build_image_to_image_params(
            workflow_uuid, width=width, height=height, image=image, prompt=prompt
        )
        return await self.run_comfy(template_uuid, params)

    async def generate_from_file(self, path: str | Path, prompt: str, **kwargs) -> str:
        """Upload ``path``, run the image-to-image app and wait for the result URL."""
        key = await self.upload_file(path)
        generate_uuid = await self.generate_image(key, prompt, **kwargs)
        result_url = await self.wait_for_result(generate_uuid)
        logger.info("Generation %s finished: %s", generate_uuid, result_url)
        return result_url


def run_generation(
    path: str | Path,
    prompt: str,
    *,
    client_kwargs: Optional[Dict[str, Any]] = None,
    **kwargs,
) -> str:
    """Synchronous upload-generate-wait for scripts without an event loop.

    ``client_kwargs`` go to LiblibClient, everything else to ``generate_from_file``.
    """

    async def _run() -> str:
        async with LiblibClient(**(client_kwargs or {})) as client:
            return await client.generate_from_file(path, prompt, **kwargs)

    return asyncio.run(_run())
