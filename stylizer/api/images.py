"""Image upload and status API.

  POST /api/images/upload   receive an image, create a job, start processing
  GET  /api/images/{id}     poll the job in the shape the frontend expects
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse

from stylizer.errors import JobNotFoundError, UploadValidationError
from stylizer.io.uploads import save_upload
from stylizer.jobs.models import Analysis, JobRecord, JobStatus
from stylizer.providers.base import TransformationProvider, fallback_analysis
from stylizer.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# POST /api/images/upload
# ---------------------------------------------------------------------------

@router.post("/images/upload")
async def upload_image(request: Request, image: Optional[UploadFile] = File(None)):
    """Accept an image upload, persist it, and start a stylization job.

    Returns:
        {id, status, originalFileName}
    """
    state = request.app.state
    if not state.dispatcher.running:
        return JSONResponse(status_code=500, content={"message": "Dispatcher not ready"})

    if image is None or not image.filename:
        raise UploadValidationError("No file uploaded")

    destination = state.artifacts.new_original_path(image.filename)
    job: Optional[JobRecord] = None
    try:
        await save_upload(
            image,
            destination,
            max_bytes=state.settings.max_upload_bytes,
            allowed_types=state.settings.allowed_content_types,
        )
        job = state.store.create(original_path=destination, original_file_name=image.filename)
        state.dispatcher.launch(job)
    except UploadValidationError:
        raise
    except Exception as exc:
        logger.exception("Upload error")
        if job is not None:
            state.store.update(job.id, status=JobStatus.ERROR, error="Failed to start processing")
        return JSONResponse(status_code=500, content={"message": str(exc) or "Failed to upload image"})

    return {
        "id": job.id,
        "status": job.status.value,
        "originalFileName": job.original_file_name,
    }


# ---------------------------------------------------------------------------
# GET /api/images/{image_id}
# ---------------------------------------------------------------------------

@router.get("/images/{image_id}")
async def get_image(image_id: str, request: Request):
    """Return job status; completed jobs include URLs and an analysis."""
    try:
        job_id = int(image_id)
    except ValueError:
        return JSONResponse(status_code=400, content={"message": "Invalid image ID"})

    state = request.app.state
    job = state.store.get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)

    return await describe_job(job, state.provider, state.artifacts)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def describe_job(
    job: JobRecord,
    provider: TransformationProvider,
    artifacts: ArtifactStore,
) -> Dict[str, Any]:
    """Client view of a job. Read-only."""
    response: Dict[str, Any] = {
        "id": job.id,
        "status": job.status.value,
        "originalFileName": job.original_file_name,
    }

    if job.status == JobStatus.ERROR:
        response["error"] = job.error or "Processing failed"

    if job.status == JobStatus.COMPLETED:
        response["originalUrl"] = artifacts.original_url(job)
        response["processedUrl"] = artifacts.processed_url(job)
        analysis = await analyze_or_fallback(provider, job.processed_path)
        response["analysis"] = analysis.model_dump(by_alias=True)

    return response


async def analyze_or_fallback(provider: TransformationProvider, result_path: Optional[str]) -> Analysis:
    if not result_path:
        return fallback_analysis()
    try:
        analysis = await provider.analyze(result_path)
    except Exception:
        logger.exception("Analysis raised for %s, using fallback", result_path)
        return fallback_analysis()
    if analysis is None or not analysis.is_usable():
        return fallback_analysis()
    return analysis
