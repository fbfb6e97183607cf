"""
Hand landmark estimation with MediaPipe Hands.
"""
from __future__ import annotations
from typing import List
import logging

import cv2
import numpy as np

from facehand.config import Settings
from facehand.models import HandPrediction

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21


class HandPoseEstimator:
    """
    MediaPipe Hands wrapper that returns 21 landmarks per hand in pixel space.

    Notes:
    - MediaPipe uses normalized coordinates; x/y are scaled by frame width/height,
      z (relative depth) by frame width.
    - MediaPipe expects RGB; frames are converted from OpenCV's BGR.
    """

    def __init__(self, settings: Settings, static_image_mode: bool = False):
        self.s = settings
        self.static_image_mode = static_image_mode
        self._hands = None

    def load(self):
        if self._hands is not None:
            return self._hands
        try:
            import mediapipe as mp
        except Exception as e:
            raise RuntimeError("MediaPipe is not installed. Install it with: pip install mediapipe") from e
        logger.info("Loading hand pose model")
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=self.static_image_mode,
            max_num_hands=int(self.s.MAX_HANDS),
            min_detection_confidence=float(self.s.HAND_MIN_CONFIDENCE),
            min_tracking_confidence=float(self.s.HAND_MIN_CONFIDENCE),
        )
        return self._hands

    def estimate_hands(self, frame: np.ndarray) -> List[HandPrediction]:
        hands = self.load()
        h, w = int(frame.shape[0]), int(frame.shape[1])
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = hands.process(rgb)
        multi = getattr(res, "multi_hand_landmarks", None) or []
        handedness = getattr(res, "multi_handedness", None) or []

        out: List[HandPrediction] = []
        for i, hand in enumerate(multi):
            pts = [(float(p.x) * w, float(p.y) * h, float(p.z) * w) for p in hand.landmark]
            if len(pts) < NUM_LANDMARKS:
                continue
            label, score = None, 0.0
            if i < len(handedness) and handedness[i].classification:
                cls = handedness[i].classification[0]
                label, score = cls.label, float(cls.score)
            out.append(HandPrediction(landmarks=pts, handedness=label, score=score))
        logger.debug(f"[hands] hands={len(out)}")
        return out

    def close(self) -> None:
        if self._hands is not None:
            self._hands.close()
            self._hands = None
