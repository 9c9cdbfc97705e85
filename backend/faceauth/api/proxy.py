"""Static model manifest passthrough.

Serves the face detection model manifest from a fixed upstream URL so the
browser can load it without cross-origin restrictions.
"""

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


class ManifestFetchError(Exception):
    """Exception raised when the upstream manifest cannot be fetched."""
    pass


def fetch_manifest(url: str, timeout: float) -> Any:
    """Fetch and parse the upstream JSON manifest.

    Raises:
        ManifestFetchError: On network errors, upstream error statuses or
            a body that is not JSON.
    """
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            body = response.read()
    except urllib.error.HTTPError as e:
        raise ManifestFetchError(f"Upstream returned {e.code}")
    except (urllib.error.URLError, OSError) as e:
        raise ManifestFetchError(f"Upstream unreachable: {str(e)}")

    try:
        return json.loads(body)
    except ValueError as e:
        raise ManifestFetchError(f"Upstream returned invalid JSON: {str(e)}")


@router.get("/proxy")
def proxy_manifest(request: Request) -> JSONResponse:
    """Return the upstream model manifest verbatim."""
    settings = request.app.state.settings
    try:
        data = fetch_manifest(settings.manifest_url, settings.manifest_timeout)
    except ManifestFetchError as e:
        logger.error(f"Manifest fetch failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return JSONResponse(content=data)
