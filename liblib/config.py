from pathlib import Path
import os
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# LiblibAI open platform. Set these in your environment (or .env) for production.
LIBLIB_API_BASE = os.environ.get("LIBLIB_API_BASE", "https://openapi.liblibai.cloud")
LIBLIB_ACCESS_KEY = os.environ.get("LIBLIB_ACCESS_KEY", "")
LIBLIB_SECRET_KEY = os.environ.get("LIBLIB_SECRET_KEY", "")

# When set, signed calls go through a relay as {path, signatureParams, data}
# instead of straight to LIBLIB_API_BASE.
LIBLIB_PROXY_URL = os.environ.get("LIBLIB_PROXY_URL", "")

# Public origin of the OSS bucket that upload keys live in
LIBLIB_OSS_BASE_URL = os.environ.get(
    "LIBLIB_OSS_BASE_URL",
    "https://liblibai-airship-temp.oss-cn-beijing.aliyuncs.com",
)
# Optional origin that replaces LIBLIB_OSS_BASE_URL in presigned upload destinations
LIBLIB_OSS_UPLOAD_PROXY = os.environ.get("LIBLIB_OSS_UPLOAD_PROXY", "")

# Default ComfyUI app used by the image-to-image flow
LIBLIB_TEMPLATE_UUID = os.environ.get("LIBLIB_TEMPLATE_UUID", "")
LIBLIB_WORKFLOW_UUID = os.environ.get("LIBLIB_WORKFLOW_UUID", "")

LIBLIB_REQUEST_TIMEOUT = float(os.environ.get("LIBLIB_REQUEST_TIMEOUT", "30"))
LIBLIB_POLL_INTERVAL = float(os.environ.get("LIBLIB_POLL_INTERVAL", "3"))
LIBLIB_MAX_POLLS = int(os.environ.get("LIBLIB_MAX_POLLS", "60"))

LOG_LEVEL = os.environ.get("LIBLIB_LOG_LEVEL", "INFO")
