"""
Pydantic data models for detection results and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Tuple

class FaceRegion(BaseModel):
    x: int
    y: int
    w: int
    h: int

class FaceResult(BaseModel):
    region: FaceRegion
    score: float
    expressions: Dict[str, float] = Field(default_factory=dict)
    dominant: Optional[str] = None

class HandPrediction(BaseModel):
    landmarks: List[Tuple[float, float, float]]
    handedness: Optional[str] = None
    score: float = 0.0

class GestureMatch(BaseModel):
    name: str
    score: float

class FingerPose(BaseModel):
    finger: str
    curl: str
    direction: str

class GestureEstimate(BaseModel):
    poses: List[FingerPose] = Field(default_factory=list)
    gestures: List[GestureMatch] = Field(default_factory=list)

class ImageAnalysis(BaseModel):
    source: str
    width: int
    height: int
    faces: List[FaceResult] = Field(default_factory=list)
    hands: int = 0
    gesture: Optional[GestureMatch] = None



# live model


class TickSnapshot(BaseModel):
    ts: float
    tick: int
    gesture: Optional[GestureMatch] = None
    faces: int = 0
    expressions: Dict[str, float] = Field(default_factory=dict)
    dominant: Optional[str] = None
    error: Optional[str] = None

class LiveStatus(BaseModel):
    running: bool
    backend: Optional[str] = None
    started_at: float | None = None
    last_snapshot: TickSnapshot | None = None
