# facehand/pipeline.py
from __future__ import annotations
from typing import Dict, List, Optional
import logging
import os

from facehand.config import Settings
from facehand.faces import FaceExpressionDetector
from facehand.formatting import format_scores
from facehand.gestures import GestureEstimator, best_gesture
from facehand.hands import HandPoseEstimator
from facehand.imaging import load_image
from facehand.models import ImageAnalysis

logger = logging.getLogger(__name__)


def analyze_frame(frame, source: str, settings: Settings,
                  faces: FaceExpressionDetector,
                  hands: HandPoseEstimator,
                  gestures: Optional[GestureEstimator] = None) -> ImageAnalysis:
    """Run hand pose, gesture estimation and face expressions on one BGR image."""
    gestures = gestures or GestureEstimator()
    h, w = frame.shape[:2]

    hand_preds = hands.estimate_hands(frame)
    gesture = None
    if hand_preds:
        gesture = best_gesture(gestures.estimate(hand_preds[0].landmarks, settings.GESTURE_MIN_SCORE))

    face_results = faces.detect(frame)
    logger.debug(f"[pipeline] {source}: faces={len(face_results)} hands={len(hand_preds)} gesture={gesture.name if gesture else None}")
    return ImageAnalysis(
        source=source,
        width=int(w),
        height=int(h),
        faces=face_results,
        hands=len(hand_preds),
        gesture=gesture,
    )


def analyze_image(image_path: str, settings: Settings,
                  faces: Optional[FaceExpressionDetector] = None,
                  hands: Optional[HandPoseEstimator] = None) -> Dict:
    """
    Load an image resized to IMG_SIZE and run both models on it.

    A hand estimator created here is closed before returning; one passed in
    stays open for the caller.
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")
    logger.debug(f"[pipeline] analyze_image start image_path={image_path}")
    faces = faces or FaceExpressionDetector(settings)
    own_hands = hands is None
    hands = hands or HandPoseEstimator(settings, static_image_mode=True)

    try:
        frame = load_image(image_path, settings.IMG_SIZE)
        result = analyze_frame(frame, os.path.basename(image_path), settings, faces, hands)
    finally:
        if own_hands:
            hands.close()
    for face in result.faces:
        logger.info(f"{result.source}: {format_scores(face.expressions, 3)}")
    return result.model_dump()


def analyze_samples(settings: Settings,
                    faces: Optional[FaceExpressionDetector] = None,
                    hands: Optional[HandPoseEstimator] = None) -> List[Dict]:
    """
    Run analyze_image over SAMPLES in SAMPLES_DIR; unreadable samples are logged and skipped.
    """
    faces = faces or FaceExpressionDetector(settings)
    own_hands = hands is None
    hands = hands or HandPoseEstimator(settings, static_image_mode=True)
    results: List[Dict] = []
    try:
        # missing model libraries should fail the run, not every sample
        faces.load()
        hands.load()
        for name in settings.SAMPLES:
            path = os.path.join(settings.SAMPLES_DIR, name)
            try:
                results.append(analyze_image(path, settings, faces=faces, hands=hands))
            except (FileNotFoundError, RuntimeError):
                logger.exception(f"[pipeline] skipping sample {path}")
    finally:
        if own_hands:
            hands.close()
    logger.debug(f"[pipeline] analyze_samples finished; analyzed={len(results)}/{len(settings.SAMPLES)}")
    return results
