"""Exception handlers that turn service errors into {message} responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from stylizer.errors import JobNotFoundError, UploadValidationError

logger = logging.getLogger(__name__)


async def upload_validation_handler(request: Request, exc: UploadValidationError) -> JSONResponse:
    logger.info("Rejected upload on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


async def job_not_found_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "Image not found"})
