import logging
from typing import Any, Dict, Optional

import httpx

from .errors import RemoteRejection, TransportError
from .signing import Credentials, sign

logger = logging.getLogger(__name__)


class SignedGateway:
    """Sends signed calls to the LiblibAI open API.

    In relay mode (``proxy_url`` set) the call is posted to the relay as
    ``{path, signatureParams, data}``; otherwise it goes straight to
    ``<api_base><path>?<signatureParams>`` with ``data`` as the JSON body.
    Either way the response is the ``{code, msg, data}`` envelope and only
    ``data`` is returned.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: Credentials,
        *,
        api_base: str,
        proxy_url: Optional[str] = None,
    ):
        self.client = client
        self.credentials = credentials
        self.api_base = api_base.rstrip("/")
        self.proxy_url = proxy_url or None

    async def call(self, path: str, data: Dict[str, Any]) -> Any:
        signed = sign(path, self.credentials)
        try:
            if self.proxy_url:
                resp = await self.client.post(
                    self.proxy_url,
                    json={"path": path, "signatureParams": signed.query_string(), "data": data},
                )
            else:
                resp = await self.client.post(f"{self.api_base}{path}?{signed.query_string()}", json=data)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {path} failed: {exc!r}") from exc

        if resp.status_code >= 400:
            raise RemoteRejection(
                f"{path} returned HTTP {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise TransportError(f"Malformed response from {path}: {resp.text[:200]}") from exc
        if not isinstance(envelope, dict) or "code" not in envelope:
            raise TransportError(f"Unexpected response envelope from {path}: {envelope!r}")

        code = envelope.get("code")
        if code != 0:
            raise RemoteRejection(
                f"{path} rejected (code {code}): {envelope.get('msg')}",
                status_code=resp.status_code,
                code=code,
                body=envelope,
            )
        logger.debug("Signed call %s succeeded", path)
        return envelope.get("data")
