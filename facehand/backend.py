"""
Numeric compute backend selection and environment report.

TensorFlow (pulled in by DeepFace) reads its device mask and log level from the
environment when it is first imported, so ``select_backend`` has to run before
any model is loaded. Model modules import their libraries lazily for that reason.
"""
from __future__ import annotations
from importlib import metadata
from typing import Dict, Optional
import json
import logging
import os
import sys

from facehand.config import Settings
from facehand.formatting import compact_str

logger = logging.getLogger(__name__)

BACKENDS = ("cpu", "gpu")
NOT_LOADED = "(not loaded)"

# distribution name -> label used in the version line
_LIBRARIES = {
    "deepface": "DeepFace",
    "tensorflow": "TensorFlow",
    "mediapipe": "MediaPipe",
    "opencv-python": "OpenCV",
}

_FLAG_VARS = ("CUDA_VISIBLE_DEVICES", "TF_CPP_MIN_LOG_LEVEL", "TF_ENABLE_ONEDNN_OPTS", "DEEPFACE_HOME")

_active: Optional[str] = None


class BackendLocked(RuntimeError):
    """A different backend was requested after TensorFlow started."""


def tensorflow_loaded() -> bool:
    return "tensorflow" in sys.modules


def select_backend(name: Optional[str], settings: Settings) -> str:
    """
    Validate and activate a compute backend.

    Args:
        name: requested backend (``cpu`` / ``gpu``); ``None`` uses ``settings.BACKEND``.
        settings: runtime settings (DEBUG and MODEL_PATH are applied too).

    Returns:
        The active backend name.

    Raises:
        ValueError: unknown backend name.
        BackendLocked: TensorFlow is loaded with a different backend.
    """
    global _active
    requested = name is not None and str(name).strip() != ""
    backend = (str(name) if requested else settings.BACKEND).strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend {backend!r}; expected one of {', '.join(BACKENDS)}")
    if _active is not None and tensorflow_loaded():
        # TF read the device mask at import; the process keeps that backend
        if requested and backend != _active:
            raise BackendLocked(f"Backend is already {_active!r}; restart to use {backend!r}")
        return _active
    if requested:
        logger.info(f"Chosen backend: {backend}")

    if backend == "cpu":
        os.environ["CUDA_VISIBLE_DEVICES"] = "-1"
    elif os.environ.get("CUDA_VISIBLE_DEVICES") == "-1":
        os.environ.pop("CUDA_VISIBLE_DEVICES")

    # production mode: silence TF info/warning chatter unless DEBUG
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "0" if settings.DEBUG else "2"

    model_home = os.path.abspath(settings.MODEL_PATH)
    os.environ.setdefault("DEEPFACE_HOME", model_home)

    _active = backend
    logger.debug(f"[backend] active={backend} debug={settings.DEBUG} model_home={model_home}")
    return backend


def active_backend() -> str:
    return _active or NOT_LOADED


def library_versions() -> Dict[str, str]:
    out: Dict[str, str] = {}
    for dist, label in _LIBRARIES.items():
        try:
            out[label] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            out[label] = NOT_LOADED
    return out


def backend_flags() -> Dict[str, str]:
    return {k: os.environ[k] for k in _FLAG_VARS if k in os.environ}


def describe_environment() -> Dict[str, object]:
    """Log the version and flag lines and return them as a dict."""
    versions = library_versions()
    flags = backend_flags()
    logger.info(
        "Version: "
        + " ".join(f"{label} {compact_str(v)}" for label, v in versions.items())
        + f" Backend: {active_backend()}"
    )
    logger.info(f"Flags: {json.dumps(flags or {'tf': 'not loaded'})}")
    return {"versions": versions, "backend": active_backend(), "flags": flags}


def engine_state() -> Dict[str, object]:
    """Devices TensorFlow is using; empty until a model has imported it."""
    if not tensorflow_loaded():
        return {}
    tf = sys.modules["tensorflow"]
    devices = [d.name for d in tf.config.list_logical_devices()]
    return {"devices": devices, "numDevices": len(devices)}


def describe_engine() -> Dict[str, object]:
    state = engine_state()
    logger.info(f"TF Engine State: {compact_str(state) or NOT_LOADED}")
    return state
