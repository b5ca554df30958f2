"""Activity upload routes."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from runmetrics.config import Settings, get_settings
from runmetrics.parsers import (
    FormatDecodeError,
    UnsupportedFormatError,
    parse_activity,
    supported_formats,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, exc: Exception, kind: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": kind})


@router.get("/formats")
def list_formats():
    """Supported upload formats."""
    return {"formats": supported_formats()}


@router.post("/parse")
def parse_upload(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
):
    """
    Parse an uploaded FIT, TCX or GPX file and return its normalized metrics.

    Plain `def` so FastAPI runs the blocking parse in its threadpool.
    """
    data = file.file.read(settings.max_upload_bytes + 1)
    if not data:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")

    filename = file.filename or ""
    try:
        metrics = parse_activity(
            data,
            filename,
            lap_distance_km=settings.lap_distance_km,
            elevation_window=settings.elevation_smoothing_window,
            elevation_threshold_m=settings.elevation_threshold_m,
        )
    except UnsupportedFormatError as exc:
        return _error(415, exc, exc.kind)
    except FormatDecodeError as exc:
        logger.info("Rejected %r: %s", filename, exc)
        return _error(422, exc, exc.kind)

    return metrics.to_dict()
