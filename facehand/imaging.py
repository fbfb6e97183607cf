"""
Image and video-frame framing helpers.
"""
from __future__ import annotations
from typing import Dict, Tuple
import logging
import os

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def fit_size(width: int, height: int, img_size: int) -> Tuple[int, int]:
    """
    Size that makes the larger axis exactly ``img_size`` while keeping aspect ratio.

    Smaller images are scaled up, larger ones down.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size {width}x{height}")
    ratio = float(height) / float(width)
    new_w = img_size if ratio <= 1 else img_size / ratio
    new_h = img_size if ratio >= 1 else img_size * ratio
    return max(1, int(round(new_w))), max(1, int(round(new_h)))


def resize_to(img: np.ndarray, img_size: int) -> np.ndarray:
    h, w = img.shape[:2]
    new_w, new_h = fit_size(w, h, img_size)
    if (new_w, new_h) == (w, h):
        return img
    interp = cv2.INTER_AREA if new_w < w else cv2.INTER_LINEAR
    return cv2.resize(img, (new_w, new_h), interpolation=interp)


def load_image(path: str, img_size: int) -> np.ndarray:
    """
    Read an image from disk and resize it so its larger axis is ``img_size``.

    Raises:
        FileNotFoundError: path does not exist.
        RuntimeError: OpenCV could not decode the file.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        raise RuntimeError(f"Could not decode image: {path}")
    out = resize_to(img, img_size)
    logger.debug(f"[imaging] loaded {path} {img.shape[1]}x{img.shape[0]} -> {out.shape[1]}x{out.shape[0]}")
    return out


def downscale(frame: np.ndarray, img_size: int) -> Tuple[np.ndarray, float]:
    """Shrink a live frame whose larger axis exceeds ``img_size``; returns (frame, scale)."""
    h, w = frame.shape[:2]
    if max(h, w) <= img_size:
        return frame, 1.0
    scale = img_size / float(max(h, w))
    small = cv2.resize(frame, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
    return small, scale


def scale_region(region: Dict[str, int], scale: float) -> Dict[str, int]:
    """Map a region found on a downscaled frame back to full-frame coordinates."""
    if scale == 1.0:
        return dict(region)
    return {k: int(region.get(k, 0) / scale) for k in ("x", "y", "w", "h")}


def clamp_region(region: Dict[str, int], width: int, height: int) -> Dict[str, int]:
    x = max(0, min(int(region.get("x", 0)), width - 1))
    y = max(0, min(int(region.get("y", 0)), height - 1))
    w = max(0, min(int(region.get("w", 0)), width - x))
    h = max(0, min(int(region.get("h", 0)), height - y))
    return {"x": x, "y": y, "w": w, "h": h}
