import sys
import types

import numpy as np
import pytest

import facehand.backend as backend
from facehand.config import Settings


class FakeDeepFace:
    """Stands in for deepface.DeepFace; detections/emotions are set per test."""
    detections = []
    emotion = {"angry": 1.0, "happy": 90.0, "neutral": 9.0}
    analyze_calls = 0
    fail_analyze = False

    @classmethod
    def extract_faces(cls, img_path=None, detector_backend=None, enforce_detection=None, align=None):
        return list(cls.detections)

    @classmethod
    def analyze(cls, img, actions=None, enforce_detection=None, detector_backend=None):
        cls.analyze_calls += 1
        if cls.fail_analyze:
            raise ValueError("emotion model exploded")
        return [{"emotion": dict(cls.emotion), "dominant_emotion": max(cls.emotion, key=cls.emotion.get)}]


class FakeLandmark:
    def __init__(self, x, y, z=0.0):
        self.x, self.y, self.z = x, y, z


class FakeHands:
    """Stands in for mediapipe.solutions.hands.Hands; returns ``landmarks`` (normalized) if set."""
    landmarks = None
    closed = False

    def __init__(self, **kwargs):
        self.kwargs = kwargs

    def process(self, rgb):
        if FakeHands.landmarks is None:
            return types.SimpleNamespace(multi_hand_landmarks=None, multi_handedness=None)
        hand = types.SimpleNamespace(landmark=[FakeLandmark(*p) for p in FakeHands.landmarks])
        cls = types.SimpleNamespace(label="Right", score=0.97)
        return types.SimpleNamespace(
            multi_hand_landmarks=[hand],
            multi_handedness=[types.SimpleNamespace(classification=[cls])],
        )

    def close(self):
        FakeHands.closed = True


@pytest.fixture
def fake_deepface(monkeypatch):
    FakeDeepFace.detections = []
    FakeDeepFace.emotion = {"angry": 1.0, "happy": 90.0, "neutral": 9.0}
    FakeDeepFace.analyze_calls = 0
    FakeDeepFace.fail_analyze = False
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=FakeDeepFace))
    return FakeDeepFace


@pytest.fixture
def fake_mediapipe(monkeypatch):
    FakeHands.landmarks = None
    FakeHands.closed = False
    mp = types.SimpleNamespace(solutions=types.SimpleNamespace(hands=types.SimpleNamespace(Hands=FakeHands)))
    monkeypatch.setitem(sys.modules, "mediapipe", mp)
    return FakeHands


@pytest.fixture
def settings(tmp_path):
    return Settings(MODEL_PATH=str(tmp_path / "models"), SAMPLES_DIR=str(tmp_path), POLL_INTERVAL=0.01)


@pytest.fixture
def frame():
    return np.zeros((120, 160, 3), dtype=np.uint8)


# Synthetic hands in pixel coordinates (wrist at 100,200; image y grows downwards)

VICTORY_HAND = [
    (100, 200, 0),
    (85, 185, 0), (75, 165, 0), (90, 150, 0), (100, 165, 0),      # thumb folded
    (90, 150, 0), (88, 120, 0), (87, 100, 0), (86, 80, 0),        # index up
    (105, 148, 0), (108, 115, 0), (110, 95, 0), (112, 75, 0),     # middle up
    (115, 152, 0), (118, 135, 0), (114, 150, 0), (112, 160, 0),   # ring curled
    (125, 158, 0), (127, 142, 0), (124, 155, 0), (122, 165, 0),   # pinky curled
]

THUMBS_UP_HAND = [
    (100, 200, 0),
    (110, 185, 0), (115, 165, 0), (117, 145, 0), (118, 125, 0),   # thumb up
    (130, 170, 0), (150, 172, 0), (145, 185, 0), (135, 192, 0),   # fingers curled sideways
    (130, 180, 0), (150, 183, 0), (147, 195, 0), (135, 198, 0),
    (128, 190, 0), (148, 194, 0), (145, 205, 0), (133, 206, 0),
    (125, 200, 0), (143, 204, 0), (140, 212, 0), (130, 208, 0),
]

OPEN_PALM_HAND = [
    (100, 200, 0),
    (80, 185, 0), (65, 170, 0), (55, 155, 0), (45, 140, 0),
    (90, 150, 0), (88, 120, 0), (87, 100, 0), (86, 80, 0),
    (105, 148, 0), (108, 115, 0), (110, 95, 0), (112, 75, 0),
    (115, 152, 0), (118, 122, 0), (120, 102, 0), (122, 85, 0),
    (125, 158, 0), (130, 135, 0), (133, 120, 0), (136, 105, 0),
]


def normalized(hand, width, height):
    return [(x / width, y / height, z / width) for x, y, z in hand]


@pytest.fixture(autouse=True)
def restore_backend_env(monkeypatch):
    # select_backend writes these; make monkeypatch restore them after each test
    for name in ("CUDA_VISIBLE_DEVICES", "TF_CPP_MIN_LOG_LEVEL", "TF_ENABLE_ONEDNN_OPTS", "DEEPFACE_HOME"):
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    monkeypatch.setattr(backend, "_active", None)


@pytest.fixture
def fake_tensorflow(monkeypatch):
    """Marks TensorFlow as imported; logical devices are CPU:0 unless a test changes them."""
    devices = [types.SimpleNamespace(name="/device:CPU:0")]
    config = types.SimpleNamespace(list_logical_devices=lambda: list(devices))
    monkeypatch.setitem(sys.modules, "tensorflow", types.SimpleNamespace(config=config))
    return devices
