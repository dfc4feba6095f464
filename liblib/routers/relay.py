import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from .. import config
from ..schemas import RelayRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])


async def get_relay_http():
    async with httpx.AsyncClient(timeout=config.LIBLIB_REQUEST_TIMEOUT) as client:
        yield client


@router.post("/liblibai")
async def relay_signed_call(request: RelayRequest, client: httpx.AsyncClient = Depends(get_relay_http)):
    """Forward an already-signed call to the LiblibAI open API.

    Browsers cannot call the API directly (CORS), so they post
    ``{path, signatureParams, data}`` here and get the upstream envelope back.
    """
    if not request.path.startswith("/api/"):
        raise HTTPException(status_code=400, detail="path must start with /api/")

    url = f"{config.LIBLIB_API_BASE.rstrip('/')}{request.path}?{request.signatureParams}"
    try:
        resp = await client.post(url, json=request.data)
    except httpx.HTTPError as exc:
        logger.warning("Relay to %s failed: %r", request.path, exc)
        raise HTTPException(status_code=502, detail=f"Upstream request failed: {exc!r}")

    try:
        body = resp.json()
    except ValueError:
        body = {"code": -1, "msg": resp.text}
    logger.info("Relayed %s -> %s", request.path, resp.status_code)
    return JSONResponse(status_code=resp.status_code, content=body)
