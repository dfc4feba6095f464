import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

import pydantic

from .errors import RemoteRejection, TransportError, ValidationError
from .gateway import SignedGateway
from .schemas import JobStatus

logger = logging.getLogger(__name__)

COMFY_SUBMIT_PATH = "/api/generate/comfyui/app"
COMFY_STATUS_PATH = "/api/generate/comfy/status"


@dataclass(frozen=True)
class RawKey:
    """An object key inside the storage bucket, e.g. ``img/abc123.png``."""

    key: str

    def resolve(self, storage_base: str) -> str:
        return f"{storage_base.rstrip('/')}/{self.key.lstrip('/')}"


@dataclass(frozen=True)
class FullUrl:
    url: str

    def resolve(self, storage_base: str) -> str:
        return self.url


AssetReference = Union[RawKey, FullUrl]


def parse_asset_reference(value: Any) -> AssetReference:
    """Turn whatever a caller put in ``inputs.image`` into an AssetReference.

    Accepts a bare key, an http(s) URL, or an upload result of the form
    ``{"key": ..., "ossBaseUrl": ...}`` (``ossBaseUrl`` optional).
    """
    if isinstance(value, (RawKey, FullUrl)):
        return value
    if isinstance(value, str) and value.strip():
        if value.startswith(("http://", "https://")):
            return FullUrl(value)
        return RawKey(value)
    if isinstance(value, dict) and isinstance(value.get("key"), str) and value["key"]:
        base = value.get("ossBaseUrl")
        if base:
            return FullUrl(RawKey(value["key"]).resolve(base))
        return parse_asset_reference(value["key"])
    raise ValidationError(f"Invalid image reference: {value!r}")


def build_image_to_image_params(
    workflow_uuid: str,
    *,
    width: int,
    height: int,
    image: Any,
    prompt: str,
) -> Dict[str, Any]:
    """generateParams for the stock image-to-image ComfyUI app."""
    return {
        "workflowUuid": workflow_uuid,
        "188": {
            "class_type": "EmptySD3LatentImage",
            "inputs": {"width": width, "height": height, "batch_size": 1},
        },
        "190": {
            "class_type": "LoadImage",
            "inputs": {"image": image},
        },
        "240": {
            "class_type": "LibLibTranslate",
            "inputs": {"text": prompt},
        },
    }


class JobSubmitter:
    def __init__(self, gateway: SignedGateway, *, storage_base: str):
        self.gateway = gateway
        self.storage_base = storage_base

    def resolve_assets(self, generate_params: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``generate_params`` with every node image as an absolute URL."""
        resolved = copy.deepcopy(generate_params)
        for node_id, node in resolved.items():
            if not isinstance(node, dict):
                continue
            inputs = node.get("inputs")
            if not isinstance(inputs, dict) or "image" not in inputs:
                continue
            url = parse_asset_reference(inputs["image"]).resolve(self.storage_base)
            if url != inputs["image"]:
                logger.info("Node %s: resolved image reference to %s", node_id, url)
            inputs["image"] = url
        return resolved

    async def submit(self, template_uuid: str, generate_params: Dict[str, Any]) -> str:
        """Start a ComfyUI workflow run and return its generateUuid."""
        if not template_uuid:
            raise ValidationError("template_uuid is required")
        payload = {
            "templateUuid": template_uuid,
            "generateParams": self.resolve_assets(generate_params),
        }
        data = await self.gateway.call(COMFY_SUBMIT_PATH, payload)
        generate_uuid = data.get("generateUuid") if isinstance(data, dict) else None
        if not generate_uuid:
            raise RemoteRejection(f"Unexpected response from {COMFY_SUBMIT_PATH}: {data!r}", body=data)
        logger.info("Submitted workflow for template %s: %s", template_uuid, generate_uuid)
        return generate_uuid

    async def get_status(self, generate_uuid: str) -> JobStatus:
        data = await self.gateway.call(COMFY_STATUS_PATH, {"generateUuid": generate_uuid})
        try:
            return JobStatus.model_validate(data)
        except pydantic.ValidationError as exc:
            raise TransportError(f"Malformed status payload for {generate_uuid}: {data!r}") from exc
