"""
Finger-pose gesture estimation from 21 hand landmarks.

Each finger gets a curl (no / half / full) and a pointing direction (one of eight
compass-style bins in image space). A gesture is a set of weighted expectations
over those per-finger values; matching yields a score on a 0..10 scale.

Landmark order follows MediaPipe / handpose: 0 wrist, then four points per finger
from base to tip (thumb 1-4, index 5-8, middle 9-12, ring 13-16, pinky 17-20).
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from facehand.models import FingerPose, GestureEstimate, GestureMatch

logger = logging.getLogger(__name__)

# angle at the middle joint (degrees) above which a finger counts as straight / half bent
NO_CURL_START_LIMIT = 130.0
HALF_CURL_START_LIMIT = 60.0

NUM_LANDMARKS = 21


class Finger(Enum):
    THUMB = "thumb"
    INDEX = "index"
    MIDDLE = "middle"
    RING = "ring"
    PINKY = "pinky"


class FingerCurl(Enum):
    NO_CURL = "no_curl"
    HALF_CURL = "half_curl"
    FULL_CURL = "full_curl"


class FingerDirection(Enum):
    HORIZONTAL_RIGHT = "horizontal_right"
    DIAGONAL_UP_RIGHT = "diagonal_up_right"
    VERTICAL_UP = "vertical_up"
    DIAGONAL_UP_LEFT = "diagonal_up_left"
    HORIZONTAL_LEFT = "horizontal_left"
    DIAGONAL_DOWN_LEFT = "diagonal_down_left"
    VERTICAL_DOWN = "vertical_down"
    DIAGONAL_DOWN_RIGHT = "diagonal_down_right"


# counter-clockwise from +x, 45 degree bins
_DIRECTION_BINS = list(FingerDirection)

# landmark chain per finger: base joint .. tip (wrist first for the four fingers)
FINGER_JOINTS: Dict[Finger, Tuple[int, ...]] = {
    Finger.THUMB: (1, 2, 3, 4),
    Finger.INDEX: (0, 5, 6, 7, 8),
    Finger.MIDDLE: (0, 9, 10, 11, 12),
    Finger.RING: (0, 13, 14, 15, 16),
    Finger.PINKY: (0, 17, 18, 19, 20),
}


def _key_points(finger: Finger) -> Tuple[int, int, int]:
    """(start, mid, end) landmark indices used for curl and direction."""
    joints = FINGER_JOINTS[finger]
    if finger is Finger.THUMB:
        # thumb starts at its CMC joint; bend measured at the IP joint
        return joints[0], joints[2], joints[3]
    return joints[0], joints[2], joints[4]


def estimate_curl(start: Sequence[float], mid: Sequence[float], end: Sequence[float]) -> FingerCurl:
    """Classify curl from the angle at ``mid`` between ``start`` and ``end``."""
    a = np.asarray(start, dtype=float)
    b = np.asarray(mid, dtype=float)
    c = np.asarray(end, dtype=float)
    start_mid = float(np.linalg.norm(a - b))
    mid_end = float(np.linalg.norm(c - b))
    start_end = float(np.linalg.norm(c - a))
    denom = 2.0 * mid_end * start_mid
    if denom == 0.0:
        # collapsed joints carry no bend information
        return FingerCurl.NO_CURL
    cos_in = (mid_end ** 2 + start_mid ** 2 - start_end ** 2) / denom
    cos_in = max(-1.0, min(1.0, cos_in))
    angle = math.degrees(math.acos(cos_in))
    if angle > NO_CURL_START_LIMIT:
        return FingerCurl.NO_CURL
    if angle > HALF_CURL_START_LIMIT:
        return FingerCurl.HALF_CURL
    return FingerCurl.FULL_CURL


def estimate_direction(start: Sequence[float], end: Sequence[float]) -> FingerDirection:
    """Direction of the start->end vector; image y grows downwards."""
    dx = float(end[0]) - float(start[0])
    dy = float(start[1]) - float(end[1])
    angle = math.degrees(math.atan2(dy, dx))
    return _DIRECTION_BINS[int(((angle + 22.5) % 360.0) // 45.0)]


def finger_poses(landmarks: Sequence[Sequence[float]]) -> Dict[Finger, Tuple[FingerCurl, FingerDirection]]:
    if len(landmarks) < NUM_LANDMARKS:
        raise ValueError(f"Expected {NUM_LANDMARKS} landmarks, got {len(landmarks)}")
    out = {}
    for finger in Finger:
        s, m, e = _key_points(finger)
        curl = estimate_curl(landmarks[s], landmarks[m], landmarks[e])
        direction = estimate_direction(landmarks[s], landmarks[e])
        out[finger] = (curl, direction)
    return out


@dataclass
class GestureDescription:
    """Weighted per-finger expectations for one named gesture."""
    name: str
    curls: Dict[Finger, List[Tuple[FingerCurl, float]]] = field(default_factory=dict)
    directions: Dict[Finger, List[Tuple[FingerDirection, float]]] = field(default_factory=dict)
    weights: Dict[Finger, float] = field(default_factory=dict)

    def add_curl(self, finger: Finger, curl: FingerCurl, confidence: float = 1.0) -> "GestureDescription":
        self.curls.setdefault(finger, []).append((curl, float(confidence)))
        return self

    def add_direction(self, finger: Finger, direction: FingerDirection, confidence: float = 1.0) -> "GestureDescription":
        self.directions.setdefault(finger, []).append((direction, float(confidence)))
        return self

    def set_weight(self, finger: Finger, weight: float) -> "GestureDescription":
        self.weights[finger] = float(weight)
        return self

    def match(self, curls: Dict[Finger, FingerCurl], directions: Dict[Finger, FingerDirection]) -> float:
        """
        Score detected curls/directions against this description.

        Every finger with expectations contributes its weight to the total; a
        detected value listed among the expectations earns ``weight * confidence``.
        Returns 0..10.
        """
        score = 0.0
        total = 0.0
        for expected, detected in ((self.curls, curls), (self.directions, directions)):
            for finger, options in expected.items():
                weight = self.weights.get(finger, 1.0)
                total += weight
                value = detected.get(finger)
                for option, confidence in options:
                    if option == value:
                        score += weight * confidence
                        break
        if total == 0.0:
            return 0.0
        return score / total * 10.0


def _victory() -> GestureDescription:
    g = GestureDescription("victory")
    g.add_curl(Finger.THUMB, FingerCurl.HALF_CURL, 1.0)
    g.add_curl(Finger.THUMB, FingerCurl.FULL_CURL, 1.0)
    g.add_curl(Finger.THUMB, FingerCurl.NO_CURL, 0.5)
    for finger in (Finger.INDEX, Finger.MIDDLE):
        g.add_curl(finger, FingerCurl.NO_CURL, 1.0)
        g.add_direction(finger, FingerDirection.VERTICAL_UP, 1.0)
        g.add_direction(finger, FingerDirection.DIAGONAL_UP_LEFT, 0.9)
        g.add_direction(finger, FingerDirection.DIAGONAL_UP_RIGHT, 0.9)
        g.set_weight(finger, 2.0)
    for finger in (Finger.RING, Finger.PINKY):
        g.add_curl(finger, FingerCurl.FULL_CURL, 1.0)
        g.add_curl(finger, FingerCurl.HALF_CURL, 0.9)
    return g


def _thumbs_up() -> GestureDescription:
    g = GestureDescription("thumbs_up")
    g.add_curl(Finger.THUMB, FingerCurl.NO_CURL, 1.0)
    g.add_direction(Finger.THUMB, FingerDirection.VERTICAL_UP, 1.0)
    g.add_direction(Finger.THUMB, FingerDirection.DIAGONAL_UP_LEFT, 0.9)
    g.add_direction(Finger.THUMB, FingerDirection.DIAGONAL_UP_RIGHT, 0.9)
    g.set_weight(Finger.THUMB, 2.0)
    for finger in (Finger.INDEX, Finger.MIDDLE, Finger.RING, Finger.PINKY):
        g.add_curl(finger, FingerCurl.FULL_CURL, 1.0)
        g.add_curl(finger, FingerCurl.HALF_CURL, 0.9)
        g.add_direction(finger, FingerDirection.HORIZONTAL_LEFT, 1.0)
        g.add_direction(finger, FingerDirection.HORIZONTAL_RIGHT, 1.0)
        g.add_direction(finger, FingerDirection.DIAGONAL_UP_LEFT, 0.9)
        g.add_direction(finger, FingerDirection.DIAGONAL_UP_RIGHT, 0.9)
    return g


VICTORY = _victory()
THUMBS_UP = _thumbs_up()
DEFAULT_GESTURES = (VICTORY, THUMBS_UP)


class GestureEstimator:
    """Score a fixed set of gesture descriptions against hand landmarks."""

    def __init__(self, gestures: Optional[Iterable[GestureDescription]] = None):
        self.gestures = list(gestures if gestures is not None else DEFAULT_GESTURES)

    def estimate(self, landmarks: Sequence[Sequence[float]], min_score: float) -> GestureEstimate:
        poses = finger_poses(landmarks)
        curls = {f: p[0] for f, p in poses.items()}
        directions = {f: p[1] for f, p in poses.items()}

        matches: List[GestureMatch] = []
        for g in self.gestures:
            score = g.match(curls, directions)
            logger.debug(f"[gestures] {g.name} score={score:.2f}")
            if score >= min_score:
                matches.append(GestureMatch(name=g.name, score=round(score, 2)))
        return GestureEstimate(
            poses=[FingerPose(finger=f.value, curl=c.value, direction=d.value) for f, (c, d) in poses.items()],
            gestures=matches,
        )


def best_gesture(estimate: GestureEstimate) -> Optional[GestureMatch]:
    if not estimate.gestures:
        return None
    return max(estimate.gestures, key=lambda g: g.score)
