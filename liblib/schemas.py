from enum import IntEnum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any


class GenerateStatus(IntEnum):
    PENDING = 1
    PROCESSING = 2
    GENERATED = 3
    AUDITING = 4
    SUCCESS = 5
    FAILED = 6
    TIMEOUT = 7

    @property
    def is_terminal(self) -> bool:
        return self in (GenerateStatus.SUCCESS, GenerateStatus.FAILED, GenerateStatus.TIMEOUT)


class UploadAuthorization(BaseModel):
    """Presigned OSS POST returned by /api/generate/upload/signature."""

    model_config = ConfigDict(populate_by_name=True)

    post_url: str = Field(alias="postUrl")
    key: str
    policy: str
    x_oss_signature: str = Field(alias="xOssSignature")
    x_oss_credential: str = Field(alias="xOssCredential")
    x_oss_date: str = Field(alias="xOssDate")
    x_oss_expires: int | str = Field(alias="xOssExpires")
    x_oss_signature_version: str = Field(alias="xOssSignatureVersion")

    def form_fields(self) -> Dict[str, str]:
        # OSS requires the policy fields in this order, ahead of the file part
        return {
            "key": self.key,
            "policy": self.policy,
            "x-oss-signature": self.x_oss_signature,
            "x-oss-credential": self.x_oss_credential,
            "x-oss-date": self.x_oss_date,
            "x-oss-expires": str(self.x_oss_expires),
            "x-oss-signature-version": self.x_oss_signature_version,
        }


class GeneratedImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(alias="imageUrl")
    seed: Optional[int] = None
    audit_status: Optional[int] = Field(default=None, alias="auditStatus")


class JobStatus(BaseModel):
    """Payload of /api/generate/comfy/status."""

    model_config = ConfigDict(populate_by_name=True)

    generate_uuid: Optional[str] = Field(default=None, alias="generateUuid")
    generate_status: GenerateStatus = Field(alias="generateStatus")
    images: Optional[List[GeneratedImage]] = None
    fail_reason: Optional[str] = Field(default=None, alias="failReason")
    percent_completed: Optional[float] = Field(default=None, alias="percentCompleted")
    points_cost: Optional[int] = Field(default=None, alias="pointsCost")
    account_balance: Optional[int] = Field(default=None, alias="accountBalance")


class RelayRequest(BaseModel):
    path: str
    signatureParams: str
    data: Dict[str, Any] = Field(default_factory=dict)


class GenerationCreated(BaseModel):
    generate_uuid: str
    image_key: str
    image_url: str


class GenerationStatusOut(BaseModel):
    generate_uuid: str
    status: str
    terminal: bool
    percent_completed: Optional[float] = None
    image_urls: List[str] = []
    fail_reason: Optional[str] = None


MAX_WAIT_ATTEMPTS = 200
MIN_WAIT_INTERVAL = 0.5
MAX_WAIT_INTERVAL = 30.0


class WaitRequest(BaseModel):
    max_attempts: Optional[int] = Field(default=None, ge=1, le=MAX_WAIT_ATTEMPTS)
    interval: Optional[float] = Field(default=None, ge=MIN_WAIT_INTERVAL, le=MAX_WAIT_INTERVAL)


class WaitResult(BaseModel):
    generate_uuid: str
    result_url: str
