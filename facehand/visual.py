"""Visualization helpers.

- draw_overlays: draw rectangles labelled with the dominant expression, the
  gesture name, or a NO_FACE flag when nothing was found
- annotate_image: run analyze output through draw_overlays and write it to disk
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Dict, List, Optional, Tuple

def draw_overlays(frame: np.ndarray,
                  faces: List[Dict] | None = None,
                  gesture: Optional[str] = None,
                  color: Tuple[int, int, int] = (0, 255, 0)) -> np.ndarray:
    """Draw bounding boxes and labels on a copy of the frame.

    Args:
        frame: BGR image
        faces: list of dicts with keys {"region": {x,y,w,h}, "dominant": str}
        gesture: optional gesture name shown in the top-left corner
        color: BGR color for rectangles

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]

    if faces is None:
        faces = []

    if gesture:
        cv2.putText(out, gesture, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 128, 0), 2, cv2.LINE_AA)
    if not faces:
        cv2.putText(out, "NO_FACE", (10, h - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2, cv2.LINE_AA)
        return out

    for face in faces:
        reg = face.get("region") or {}
        x, y, fw, fh = int(reg.get("x", 0)), int(reg.get("y", 0)), int(reg.get("w", 0)), int(reg.get("h", 0))
        # clamp to image bounds
        x = max(0, min(x, w-1)); y = max(0, min(y, h-1))
        fw = max(0, min(fw, w-x)); fh = max(0, min(fh, h-y))

        cv2.rectangle(out, (x, y), (x+fw, y+fh), color, 2)
        label = face.get("dominant") or ""
        if label:
            cv2.putText(out, label, (x, max(0, y-10)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv2.LINE_AA)

    return out


def annotate_image(frame: np.ndarray, analysis: Dict, output_path: str) -> str:
    """Write ``frame`` with the faces/gesture of an analyze_image result drawn on it."""
    gesture = (analysis.get("gesture") or {}).get("name")
    annotated = draw_overlays(frame, analysis.get("faces") or [], gesture)
    try:
        ok = cv2.imwrite(output_path, annotated)
    except cv2.error as e:
        raise RuntimeError(f"Could not write image: {output_path}") from e
    if not ok:
        raise RuntimeError(f"Could not write image: {output_path}")
    return output_path
