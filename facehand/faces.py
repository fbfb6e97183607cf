"""
Face detection and expression scoring with DeepFace.
"""
# facehand/faces.py
from __future__ import annotations
from typing import Dict, List, Optional
import logging

import numpy as np

from facehand.config import Settings
from facehand.imaging import clamp_region, downscale, scale_region
from facehand.models import FaceRegion, FaceResult

logger = logging.getLogger(__name__)

# DeepFace detector backends accepted here; "opencv" is the tiny/fast one
DETECTORS = ("opencv", "ssd", "mtcnn", "retinaface", "mediapipe", "yunet", "yolov8")


def _normalize_expressions(raw) -> Dict[str, float]:
    """DeepFace reports percentages; convert to 0..1 probabilities."""
    if not isinstance(raw, dict) or not raw:
        return {}
    vals = {str(k): float(v) for k, v in raw.items()}
    if max(vals.values()) > 1.0:
        vals = {k: v / 100.0 for k, v in vals.items()}
    return vals


class FaceExpressionDetector:
    """Detect faces in a BGR frame and score their expressions."""

    def __init__(self, settings: Settings):
        self.s = settings
        if self.s.FACE_DETECTOR not in DETECTORS:
            raise ValueError(f"Unknown face detector {self.s.FACE_DETECTOR!r}")
        self._df = None

    def load(self):
        """Import DeepFace and build the expression model once."""
        if self._df is not None:
            return self._df
        try:
            # Lazy import so the backend is selected before TensorFlow starts
            from deepface import DeepFace
        except Exception as e:
            raise RuntimeError("DeepFace import failed. Ensure deepface/tensorflow stack is installed.") from e
        logger.info("Loading face models")
        build = getattr(DeepFace, "build_model", None)
        if build is not None:
            try:
                build(task="facial_attribute", model_name="Emotion")
            except TypeError:
                # older DeepFace signature: build_model("Emotion")
                build("Emotion")
        self._df = DeepFace
        return self._df

    def detect(self, frame: np.ndarray) -> List[FaceResult]:
        """
        Detect faces and score expressions.

        Returns at most MAX_RESULTS faces with score >= MIN_SCORE, best first.
        """
        DeepFace = self.load()
        H, W = frame.shape[:2]
        small, scale = downscale(frame, self.s.IMG_SIZE)

        dets = DeepFace.extract_faces(
            img_path=small,
            detector_backend=self.s.FACE_DETECTOR,
            enforce_detection=False,
            align=True,
        )
        candidates = []
        for d in dets or []:
            fa = (d or {}).get("facial_area") or {}
            try:
                score = float(d.get("confidence") or 0.0)
            except (TypeError, ValueError):
                score = 0.0
            reg = clamp_region(scale_region(fa, scale), W, H)
            if score < self.s.MIN_SCORE or reg["w"] <= 0 or reg["h"] <= 0:
                continue
            candidates.append((score, reg))
        candidates.sort(key=lambda c: c[0], reverse=True)
        candidates = candidates[: max(0, self.s.MAX_RESULTS)]
        logger.debug(f"[faces] detections={len(dets or [])} kept={len(candidates)}")

        results: List[FaceResult] = []
        for score, reg in candidates:
            chip = frame[reg["y"]:reg["y"] + reg["h"], reg["x"]:reg["x"] + reg["w"]]
            expressions = self._expressions(DeepFace, chip if chip.size else frame)
            dominant = max(expressions, key=expressions.get) if expressions else None
            results.append(FaceResult(
                region=FaceRegion(**reg),
                score=round(score, 4),
                expressions=expressions,
                dominant=dominant,
            ))
        return results

    def _expressions(self, DeepFace, chip: np.ndarray) -> Dict[str, float]:
        try:
            res = DeepFace.analyze(
                chip,
                actions=["emotion"],
                enforce_detection=False,
                detector_backend="skip",
            )
        except Exception:
            logger.exception("[faces] expression inference failed; leaving expressions empty")
            return {}
        res = res if isinstance(res, list) else [res]
        r0: Optional[dict] = res[0] if res else None
        return _normalize_expressions((r0 or {}).get("emotion"))
