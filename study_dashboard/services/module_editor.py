"""Form state of the module editor.

The draft lives for as long as the editor view is open. Uploaded files are
validated one by one: an oversized file is rejected with its own message
while the rest of the batch is still taken.
"""

import base64
from typing import List, Optional
from urllib.parse import urlparse

from study_dashboard.config import settings
from study_dashboard.icons import DEFAULT_ICON
from study_dashboard.models import Module, StudyMaterial
from study_dashboard.utils import is_blank, sanitize_text, validate_file_size

DEFAULT_MIME_TYPE = "application/octet-stream"
VIDEO_URL_SCHEMES = ("http", "https")


class DraftValidationError(ValueError):
    """Raised when a draft cannot become a Module."""


def _limit_label(max_bytes: int) -> str:
    megabytes = max_bytes / (1024 * 1024)
    return f"{megabytes:g}MB"


class ModuleDraft:
    def __init__(self, existing: Optional[Module] = None, max_bytes: int = settings.MAX_MATERIAL_BYTES):
        self.module_id = existing.id if existing else None
        self.title = existing.title if existing else ""
        self.description = existing.description if existing else ""
        self.icon_name = existing.icon_name if existing else DEFAULT_ICON
        self.video_url = (existing.video_url or "") if existing else ""
        self.materials: List[StudyMaterial] = list(existing.materials) if existing else []
        self.max_bytes = max_bytes
        self.errors: List[str] = []

    @property
    def is_new(self) -> bool:
        return self.module_id is None

    def update_fields(self, title: str, description: str, icon_name: str, video_url: str) -> None:
        self.title = title
        self.description = description
        self.icon_name = icon_name or DEFAULT_ICON
        self.video_url = video_url

    async def add_files(self, uploads) -> List[str]:
        """Append every acceptable upload as an inline base64 material.

        Returns the rejection messages, which also replace ``errors``.
        """
        self.errors = []
        for upload in uploads:
            if not upload.filename:
                # An empty file input still posts one nameless part
                continue
            content = await upload.read()
            if not validate_file_size(len(content), self.max_bytes):
                self.errors.append(
                    f"The file {upload.filename} is too large. The limit is {_limit_label(self.max_bytes)}."
                )
                continue
            self.materials.append(
                StudyMaterial(
                    name=upload.filename,
                    type=upload.content_type or DEFAULT_MIME_TYPE,
                    data=base64.b64encode(content).decode("ascii"),
                )
            )
        return self.errors

    def remove_material(self, index: int) -> bool:
        if 0 <= index < len(self.materials):
            del self.materials[index]
            return True
        return False

    def build(self, now_ms: int) -> Module:
        """Validate and produce the Module to save.

        ``now_ms`` (the current time in milliseconds) becomes the id of a
        new module.
        """
        if is_blank(self.title) or is_blank(self.description):
            raise DraftValidationError("Title and description are required.")

        video_url = self.video_url.strip()
        if video_url and urlparse(video_url).scheme.lower() not in VIDEO_URL_SCHEMES:
            raise DraftValidationError("The video URL must start with http:// or https://.")

        module_id = self.module_id if self.module_id is not None else now_ms

        return Module(
            id=module_id,
            title=sanitize_text(self.title),
            description=sanitize_text(self.description),
            icon_name=self.icon_name,
            video_url=video_url or None,
            materials=list(self.materials),
        )
