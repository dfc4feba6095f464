from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ..client import LiblibClient
from ..errors import (
    JobResultMissing,
    LiblibError,
    PollingCancelled,
    PollingExhausted,
    RemoteRejection,
    TerminalJobFailure,
    TransportError,
    ValidationError,
)
from ..schemas import GenerationCreated, GenerationStatusOut, WaitRequest, WaitResult

router = APIRouter(prefix="/generations", tags=["generations"])


def http_error(exc: LiblibError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, TerminalJobFailure):
        return HTTPException(
            status_code=422,
            detail={"status": exc.status.name, "reason": exc.reason},
        )
    if isinstance(exc, (PollingExhausted, PollingCancelled)):
        return HTTPException(status_code=504, detail=str(exc))
    if isinstance(exc, (RemoteRejection, TransportError, JobResultMissing)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


async def get_client():
    try:
        client = LiblibClient()
    except LiblibError as exc:
        # only raised for missing credentials
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    try:
        yield client
    finally:
        await client.aclose()


@router.post("/", status_code=202, response_model=GenerationCreated)
async def create_generation(
    file: UploadFile = File(...),
    prompt: str = Form(...),
    width: int = Form(1024),
    height: int = Form(1024),
    template_uuid: Optional[str] = Form(None),
    workflow_uuid: Optional[str] = Form(None),
    client: LiblibClient = Depends(get_client),
):
    content = await file.read()
    try:
        key = await client.upload_bytes(content, file.filename or "")
        generate_uuid = await client.generate_image(
            key,
            prompt,
            width=width,
            height=height,
            template_uuid=template_uuid,
            workflow_uuid=workflow_uuid,
        )
    except LiblibError as exc:
        raise http_error(exc) from exc
    return GenerationCreated(generate_uuid=generate_uuid, image_key=key, image_url=client.image_url(key))


@router.get("/{generate_uuid}", response_model=GenerationStatusOut)
async def get_generation(generate_uuid: str, client: LiblibClient = Depends(get_client)):
    try:
        status = await client.get_status(generate_uuid)
    except LiblibError as exc:
        raise http_error(exc) from exc
    return GenerationStatusOut(
        generate_uuid=generate_uuid,
        status=status.generate_status.name,
        terminal=status.generate_status.is_terminal,
        percent_completed=status.percent_completed,
        image_urls=[image.image_url for image in status.images or []],
        fail_reason=status.fail_reason,
    )


@router.post("/{generate_uuid}/wait", response_model=WaitResult)
async def wait_for_generation(
    generate_uuid: str,
    request: Optional[WaitRequest] = None,
    client: LiblibClient = Depends(get_client),
):
    """Block until the job reaches a terminal status (or the poll budget runs out)."""
    request = request or WaitRequest()
    try:
        result_url = await client.wait_for_result(
            generate_uuid,
            max_attempts=request.max_attempts,
            interval=request.interval,
        )
    except LiblibError as exc:
        raise http_error(exc) from exc
    return WaitResult(generate_uuid=generate_uuid, result_url=result_url)
