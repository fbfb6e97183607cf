"""
REST endpoints for image detection and the live webcam loop.
"""
from pathlib import Path
from fastapi import APIRouter, UploadFile, File, HTTPException, Query
from fastapi.responses import JSONResponse
import logging

from facehand.backend import BackendLocked, describe_environment, select_backend
from facehand.config import Settings
from facehand.live import LiveDemo, LoopStillStopping
from facehand.pipeline import analyze_image

import tempfile
import shutil
import os


router = APIRouter()
settings = Settings()
live_demo = LiveDemo(settings)
logger = logging.getLogger(__name__)


@router.get("/version")
async def version():
    """Library versions, active backend and environment flags."""
    return describe_environment()


@router.post("/detect")
async def detect(
    file: UploadFile = File(...),
    backend: str | None = Query(None),
):
    """
    Detect faces (with expressions), hands and gestures in an uploaded image.

    Args:
        file: Uploaded image file.
        backend: Optional compute backend (cpu / gpu).

    Returns:
        JSONResponse: Structured detection payload.
    """
    logger.debug(f"[api] /detect filename={file.filename} backend={backend}")
    try:
        select_backend(backend, settings)
    except BackendLocked as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Save to temp file
    try:
        suffix = Path(file.filename or "").suffix or ".jpg"
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            shutil.copyfileobj(file.file, tmp)
            tmp_path = tmp.name
    except Exception as e:
        logger.exception("[api] upload save failed")
        raise HTTPException(status_code=400, detail=f"Upload failed: {e}")

    try:
        payload = analyze_image(tmp_path, settings)
        return JSONResponse(payload)
    except FileNotFoundError as e:
        logger.exception("[api] analyze_image file not found")
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("[api] analyze_image failed")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.warning(f"[api] failed to cleanup tmp file: {tmp_path}")


@router.post("/live/start")
async def live_start(backend: str | None = Query(None)):
    if live_demo.running:
        return {"status": "already_running"}
    try:
        live_demo.start(backend)
    except (BackendLocked, LoopStillStopping) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("[api] live start failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "started", "backend": live_demo.backend}

@router.get("/live/status")
async def live_status():
    return live_demo.status().model_dump()

@router.post("/live/stop")
async def live_stop():
    if not live_demo.running:
        return {"status": "not_running"}
    live_demo.stop()
    # a slow tick may still be finishing; the worker releases the camera itself
    return {"status": "stopping" if live_demo.stopping else "stopped"}
