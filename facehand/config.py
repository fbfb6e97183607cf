"""
Configuration for the webcam demo.
"""
from pydantic import BaseModel, Field
from typing import List
import os


def _env_bool(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    BACKEND: str = (os.getenv("BACKEND", "cpu") or "cpu")
    MODEL_PATH: str = os.getenv("MODEL_PATH", "./models/")
    DEBUG: bool = _env_bool("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # face detection
    IMG_SIZE: int = int(os.getenv("IMG_SIZE", "800"))
    MIN_SCORE: float = float(os.getenv("MIN_SCORE", "0.3"))
    MAX_RESULTS: int = int(os.getenv("MAX_RESULTS", "10"))
    FACE_DETECTOR: str = os.getenv("FACE_DETECTOR", "opencv")

    # hand pose / gestures
    MAX_HANDS: int = int(os.getenv("MAX_HANDS", "1"))
    HAND_MIN_CONFIDENCE: float = float(os.getenv("HAND_MIN_CONFIDENCE", "0.5"))
    GESTURE_MIN_SCORE: float = float(os.getenv("GESTURE_MIN_SCORE", "8.5"))

    # live loop
    POLL_INTERVAL: float = float(os.getenv("POLL_INTERVAL", "0.5"))
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))

    # still images
    SAMPLES_DIR: str = os.getenv("SAMPLES_DIR", "./samples/")
    SAMPLES: List[str] = Field(default_factory=lambda: _env_list(
        "SAMPLES",
        "sample1.jpg,sample2.jpg,sample3.jpg,sample4.jpg,sample5.jpg,sample6.jpg",
    ))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize BACKEND: strip comments/extra words, lower-case (validated in facehand.backend)
        self.BACKEND = ((self.BACKEND or "cpu").strip().split() or ["cpu"])[0].lower()
        self.LOG_LEVEL = (self.LOG_LEVEL or "INFO").strip().upper()
