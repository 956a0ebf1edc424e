"""
Campaign image handling: safe display URLs and IPFS uploads via Pinata.

Campaign records only store an image reference string. Uploading the file
to IPFS is a separate, optional step done before the campaign is created.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from dotenv import load_dotenv

from crowdfund_toolkit.campaigns.models import PLACEHOLDER_IMAGE
from crowdfund_toolkit.shared.exceptions import (
    APIException,
    ConfigurationException,
    ValidationError,
)
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.shared.retry import HTTP_RETRY_CONFIG
from crowdfund_toolkit.shared.services.http_client import get_async_client

load_dotenv()

logger = get_logger(__name__)

PINATA_API_URL = "https://api.pinata.cloud"
DEFAULT_GATEWAY = "https://gateway.pinata.cloud"

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MiB

IMAGE_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

# Placeholder services that must never be rendered
BLOCKED_IMAGE_DOMAINS = (
    "via.placeholder.com",
    "placeholder.com",
    "dummyimage.com",
    "fakeimg.pl",
)


def gateway_url(cid_or_uri: str, gateway: Optional[str] = None) -> str:
    """Public gateway URL for a CID or an ipfs:// URI."""
    if not cid_or_uri:
        raise ValueError("A CID is required")
    cid = cid_or_uri.strip()
    if cid.startswith("ipfs://"):
        cid = cid[len("ipfs://") :]
    base = gateway or os.getenv("CF_PINATA_GATEWAY") or DEFAULT_GATEWAY
    base = base.rstrip("/")
    return f"{base}/ipfs/{cid}"


def _is_blocked_host(hostname: Optional[str]) -> bool:
    if not hostname:
        return False
    return any(
        hostname == domain or hostname.endswith("." + domain)
        for domain in BLOCKED_IMAGE_DOMAINS
    )


def safe_image_url(
    url: Optional[str], fallback: str = PLACEHOLDER_IMAGE
) -> str:
    """
    Return a URL that is safe to render for a campaign image.

    Blank values, blocked placeholder hosts and anything that is neither an
    absolute http(s) URL nor a local path fall back to ``fallback``.
    ``ipfs://`` references are turned into gateway URLs.
    """
    if not url or not url.strip():
        return fallback
    url = url.strip()

    if url.lower().startswith("ipfs://"):
        return gateway_url(url)

    try:
        parsed = urlparse(url)
    except ValueError:
        return fallback
    if _is_blocked_host(parsed.hostname):
        logger.warning(f"Blocked unsafe image URL: {url}")
        return fallback
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url
    if url.startswith(("/", "./", "../")):
        return url
    return fallback


def validate_image_file(path: str) -> Path:
    """
    Check that a file can be used as a campaign image.

    Raises:
        ValidationError: missing file, unsupported type or larger than 5 MiB
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ValidationError(
            f"Image file not found: {path}", errors={"image": "File not found"}
        )

    if file_path.suffix.lower() not in IMAGE_CONTENT_TYPES:
        message = "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed"
        raise ValidationError(message, errors={"image": message})

    if file_path.stat().st_size > MAX_IMAGE_SIZE:
        message = "File size too large. Maximum size is 5MB"
        raise ValidationError(message, errors={"image": message})

    return file_path


@dataclass
class ImageUpload:
    """A pinned image."""

    url: str  # Gateway URL, stored as the campaign's image reference
    cid: str
    ipfs_uri: str
    size: int


class PinataService:
    """Pins campaign images to IPFS through the Pinata API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        gateway: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or os.getenv("CF_PINATA_API_KEY")
        self.api_secret = api_secret or os.getenv("CF_PINATA_API_SECRET")
        self.gateway = (
            gateway or os.getenv("CF_PINATA_GATEWAY") or DEFAULT_GATEWAY
        )
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_async_client()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key or not self.api_secret:
            raise ConfigurationException(
                "Pinata credentials missing: set CF_PINATA_API_KEY and "
                "CF_PINATA_API_SECRET"
            )
        return {
            "pinata_api_key": self.api_key,
            "pinata_secret_api_key": self.api_secret,
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = self._auth_headers()
        url = f"{PINATA_API_URL}{path}"
        try:
            response = await self.client.request(
                method, url, headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise APIException(f"Failed to reach Pinata: {e}") from e

        if response.status_code in (401, 403):
            raise ConfigurationException(
                f"Pinata rejected the credentials ({response.status_code})"
            )
        if response.status_code != 200:
            raise APIException(
                f"Pinata {method} {path} failed "
                f"({response.status_code}): {response.text}"
            )
        return response

    async def upload_image(
        self, path: str, name: Optional[str] = None
    ) -> ImageUpload:
        """
        Pin an image file.

        Args:
            path: Local image file
            name: Pin name (defaults to the file name)

        Returns:
            ImageUpload with the gateway URL to store on the campaign

        Raises:
            ValidationError: the file is not an acceptable image
            ConfigurationException: credentials are missing
            APIException: Pinata could not be reached or refused the upload
        """
        file_path = validate_image_file(path)
        self._auth_headers()

        content = file_path.read_bytes()
        content_type = IMAGE_CONTENT_TYPES[file_path.suffix.lower()]
        metadata = {
            "name": name or file_path.name,
            "keyvalues": {
                "uploadedAt": datetime.now(timezone.utc).isoformat(),
                "originalName": file_path.name,
                "fileType": content_type,
                "fileSize": str(len(content)),
            },
        }

        response = await HTTP_RETRY_CONFIG.run(
            self._request,
            "POST",
            "/pinning/pinFileToIPFS",
            files={"file": (file_path.name, content, content_type)},
            data={"pinataMetadata": json.dumps(metadata)},
        )

        payload = response.json()
        cid = payload.get("IpfsHash") or payload.get("cid") or payload.get("hash")
        if not cid:
            raise APIException(f"No IPFS hash in Pinata response: {payload}")

        logger.info(f"Pinned {file_path.name} as {cid}")
        return ImageUpload(
            url=gateway_url(cid, self.gateway),
            cid=cid,
            ipfs_uri=f"ipfs://{cid}",
            size=len(content),
        )

    async def unpin(self, cid: str) -> None:
        """Remove a pin."""
        if cid.startswith("ipfs://"):
            cid = cid[len("ipfs://") :]
        await self._request("DELETE", f"/pinning/unpin/{cid}")

    async def test_authentication(self) -> Dict[str, Any]:
        response = await self._request("GET", "/data/testAuthentication")
        return response.json()
