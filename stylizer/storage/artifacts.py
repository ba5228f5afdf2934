"""On-disk artifact areas for original uploads and processed results."""

import os
import re
import uuid
from typing import Optional

from stylizer.jobs.models import JobRecord

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: Optional[str], default: str = "image.jpg") -> str:
    """Reduce a client-supplied filename to a safe basename."""
    name = os.path.basename((filename or "").replace("\\", "/"))
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or default


class ArtifactStore:
    """Manages the two segregated artifact directories and their public URLs.

    Layout:
        <base_dir>/original/   uploaded inputs
        <base_dir>/processed/  stylized outputs
    """

    def __init__(self, base_dir: str, public_prefix: str = "/uploads"):
        self._base_dir = base_dir
        self._public_prefix = "/" + public_prefix.strip("/")
        self.original_dir = os.path.join(base_dir, "original")
        self.processed_dir = os.path.join(base_dir, "processed")

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def ensure_dirs(self) -> None:
        for path in (self._base_dir, self.original_dir, self.processed_dir):
            os.makedirs(path, exist_ok=True)

    def new_original_path(self, filename: Optional[str]) -> str:
        """Unique destination for an incoming upload."""
        return os.path.join(self.original_dir, f"{uuid.uuid4().hex}-{safe_filename(filename)}")

    def processed_path_for(self, job: JobRecord) -> str:
        """Destination of a job's result, keyed on the job id."""
        return os.path.join(
            self.processed_dir, f"processed_{job.id}_{os.path.basename(job.original_path)}"
        )

    def original_url(self, job: JobRecord) -> str:
        return f"{self._public_prefix}/original/{os.path.basename(job.original_path)}"

    def processed_url(self, job: JobRecord) -> Optional[str]:
        if not job.processed_path:
            return None
        return f"{self._public_prefix}/processed/{os.path.basename(job.processed_path)}"
