# facehand/live.py
"""
Live webcam polling loop.

Every POLL_INTERVAL seconds the current camera frame goes through:
- the hand model; the first hand is scored by the gesture estimator and the
  best gesture name is logged
- the face model; the expressions of the first face are logged

Any failure inside a tick is logged and the loop carries on with the next tick.
Ticks run sequentially on one thread, so a slow inference delays the next tick
rather than overlapping it.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional
import logging

import cv2
import numpy as np

from facehand.backend import describe_engine, describe_environment, select_backend
from facehand.config import Settings
from facehand.faces import FaceExpressionDetector
from facehand.formatting import compact_str, format_error, format_scores
from facehand.gestures import GestureEstimator, best_gesture
from facehand.hands import HandPoseEstimator
from facehand.models import LiveStatus, TickSnapshot

logger = logging.getLogger(__name__)


class CameraUnavailable(RuntimeError):
    """No frame could be read from the camera."""


class LoopStillStopping(RuntimeError):
    """start() was called while the previous loop thread is still finishing a tick."""


class LiveDemo:
    """Polls the camera on a fixed interval and logs gesture + expression results."""
    def __init__(self, settings: Settings,
                 faces: Optional[FaceExpressionDetector] = None,
                 hands: Optional[HandPoseEstimator] = None,
                 gestures: Optional[GestureEstimator] = None,
                 capture_factory: Optional[Callable[[int], object]] = None):
        self.s = settings
        self.faces = faces or FaceExpressionDetector(settings)
        self.hands = hands or HandPoseEstimator(settings)
        self.gestures = gestures or GestureEstimator()
        self._capture_factory = capture_factory or cv2.VideoCapture
        self._cap = None
        self._run = False
        self._thread: Optional[threading.Thread] = None
        self._tick_count = 0
        self._last_snapshot: Optional[TickSnapshot] = None
        self._started_at: Optional[float] = None
        self.backend: Optional[str] = None

    # ---- lifecycle ----
    def setup(self, backend: Optional[str] = None) -> None:
        """Select the backend, load both models, then open the camera."""
        self.backend = select_backend(backend, self.s)
        describe_environment()
        self.faces.load()
        self.hands.load()
        describe_engine()
        self._open_camera()

    def start(self, backend: Optional[str] = None):
        if self._run:
            return
        if self.stopping:
            raise LoopStillStopping("Previous live loop has not finished its last tick")
        try:
            self.setup(backend)
        except Exception:
            self._teardown()
            raise
        self._run = True
        self._started_at = time.time()
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        """Ask the loop to end; the worker releases the camera once its current tick is done."""
        self._run = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout if timeout is not None else self.s.POLL_INTERVAL * 4)
            if not self._thread.is_alive():
                self._thread = None

    @property
    def running(self) -> bool:
        return self._run

    @property
    def stopping(self) -> bool:
        return not self._run and self._thread is not None and self._thread.is_alive()

    def status(self) -> LiveStatus:
        return LiveStatus(
            running=self._run,
            backend=self.backend,
            started_at=self._started_at,
            last_snapshot=self._last_snapshot,
        )

    def run(self, backend: Optional[str] = None, max_ticks: Optional[int] = None) -> Optional[TickSnapshot]:
        """Blocking variant of start(); stops after ``max_ticks`` ticks when given."""
        try:
            self.setup(backend)
            self._run = True
            self._started_at = time.time()
            self._loop(max_ticks=max_ticks)
        finally:
            self._run = False
            self._teardown()
        return self._last_snapshot

    def _worker(self):
        try:
            self._loop()
        finally:
            self._teardown()

    # ---- camera ----
    def _open_camera(self) -> None:
        try:
            cap = self._capture_factory(self.s.CAMERA_INDEX)
            if cap is None or not cap.isOpened():
                raise CameraUnavailable(f"Could not open camera index {self.s.CAMERA_INDEX}")
            self._cap = cap
            logger.debug(f"[live] camera {self.s.CAMERA_INDEX} opened")
        except Exception:
            # keep polling; each tick reports the missing frame
            logger.exception("Something went wrong!")
            self._cap = None

    def _read_frame(self) -> np.ndarray:
        if self._cap is None:
            raise CameraUnavailable(f"Camera {self.s.CAMERA_INDEX} is not available")
        ok, frame = self._cap.read()
        if not ok or frame is None:
            raise CameraUnavailable("No frame received from camera")
        return frame

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _teardown(self) -> None:
        self._release()
        self.hands.close()

    # ---- loop ----
    def _loop(self, max_ticks: Optional[int] = None):
        interval = max(0.0, float(self.s.POLL_INTERVAL))
        next_t = time.monotonic()
        done = 0
        while self._run:
            now = time.monotonic()
            if now < next_t:
                time.sleep(min(next_t - now, 0.05))
                continue

            try:
                frame = self._read_frame()
                self.tick(frame)
            except Exception as err:
                self._record_error(err)

            done += 1
            if max_ticks is not None and done >= max_ticks:
                break
            # never schedule into the past after a slow tick
            next_t = max(next_t + interval, time.monotonic())

    def tick(self, frame: np.ndarray) -> TickSnapshot:
        """Run both models on one frame and log the results."""
        self._tick_count += 1
        snap = TickSnapshot(ts=time.time(), tick=self._tick_count)
        try:
            hands = self.hands.estimate_hands(frame)
            if hands:
                estimate = self.gestures.estimate(hands[0].landmarks, self.s.GESTURE_MIN_SCORE)
                best = best_gesture(estimate)
                if best is not None:
                    snap.gesture = best
                    logger.info(best.name)

            faces = self.faces.detect(frame)
            snap.faces = len(faces)
            if faces:
                snap.expressions = faces[0].expressions
                snap.dominant = faces[0].dominant
                logger.info(f"TinyFace: {format_scores(faces[0].expressions, 3)}")
            else:
                logger.debug("[live] TinyFace: no face")
        except Exception as err:
            snap.error = format_error(err)
            logger.exception(f"Error during processing {snap.error}")
        self._last_snapshot = snap
        return snap

    def _record_error(self, err: Exception) -> None:
        self._tick_count += 1
        message = format_error(err)
        logger.error(f"Error during processing {message}")
        self._last_snapshot = TickSnapshot(ts=time.time(), tick=self._tick_count, error=message)


def describe_snapshot(snap: Optional[TickSnapshot]) -> str:
    if snap is None:
        return ""
    return compact_str(snap.model_dump(exclude_none=True))
