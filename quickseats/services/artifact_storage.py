"""
Redemption artifact storage
"""

import asyncio
import logging
import os
import re
import uuid

from quickseats.config import settings

logger = logging.getLogger(__name__)


class LocalArtifactStorage:
    """
    Stores named blobs on local disk and returns the URL they are served from
    """

    def __init__(self, directory: str = None, public_base_url: str = None):
        self.directory = directory or settings.ARTIFACT_STORAGE_DIR
        self.public_base_url = (public_base_url or settings.ARTIFACT_PUBLIC_BASE_URL).rstrip("/")

    def _write(self, filename: str, content: bytes):
        os.makedirs(self.directory, exist_ok=True)
        with open(os.path.join(self.directory, filename), "wb") as handle:
            handle.write(content)

    async def put(self, name: str, content: bytes) -> str:
        """Persist ``content`` under a unique name derived from ``name``"""
        base, ext = os.path.splitext(os.path.basename(name))
        base = re.sub(r"[^A-Za-z0-9_-]+", "-", base).strip("-") or "artifact"
        filename = f"{base}-{uuid.uuid4().hex[:8]}{ext}"

        await asyncio.to_thread(self._write, filename, content)
        logger.debug(f"Stored artifact {filename} ({len(content)} bytes)")
        return f"{self.public_base_url}/{filename}"
