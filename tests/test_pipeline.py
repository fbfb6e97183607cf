import cv2
import numpy as np
import pytest

import facehand.pipeline as pipe
from conftest import THUMBS_UP_HAND, normalized


def _write(path, w=160, h=120):
    cv2.imwrite(str(path), np.full((h, w, 3), 90, dtype=np.uint8))
    return str(path)


def test_analyze_image(fake_deepface, fake_mediapipe, settings, tmp_path):
    settings.IMG_SIZE = 320  # 160x120 -> 320x240
    img = _write(tmp_path / "face.png")
    fake_mediapipe.landmarks = normalized(THUMBS_UP_HAND, 320, 240)
    fake_deepface.detections = [{"facial_area": {"x": 20, "y": 20, "w": 50, "h": 50}, "confidence": 0.8}]

    res = pipe.analyze_image(img, settings)
    assert res["source"] == "face.png"
    assert (res["width"], res["height"]) == (320, 240)
    assert res["hands"] == 1
    assert res["gesture"]["name"] == "thumbs_up"
    assert res["faces"][0]["dominant"] == "happy"


def test_analyze_image_missing(settings):
    with pytest.raises(FileNotFoundError):
        pipe.analyze_image("/no/such/file.jpg", settings)


def test_analyze_samples_skips_unreadable(fake_deepface, fake_mediapipe, settings, tmp_path):
    _write(tmp_path / "sample1.jpg")
    (tmp_path / "sample2.jpg").write_bytes(b"garbage")
    settings.SAMPLES = ["sample1.jpg", "sample2.jpg", "sample3.jpg"]

    results = pipe.analyze_samples(settings)
    assert [r["source"] for r in results] == ["sample1.jpg"]
    assert results[0]["faces"] == [] and results[0]["gesture"] is None


def test_analyze_samples_requires_models(monkeypatch, fake_mediapipe, settings):
    monkeypatch.setitem(__import__("sys").modules, "deepface", None)
    with pytest.raises(RuntimeError):
        pipe.analyze_samples(settings)


def test_analyze_image_closes_its_hand_model(fake_deepface, fake_mediapipe, settings, tmp_path):
    img = _write(tmp_path / "face.png")
    pipe.analyze_image(img, settings)
    assert fake_mediapipe.closed


def test_analyze_image_closes_hand_model_on_failure(monkeypatch, fake_deepface, fake_mediapipe, settings, tmp_path):
    img = _write(tmp_path / "face.png")

    def failing(frame, source, settings, faces, hands):
        hands.estimate_hands(frame)
        raise RuntimeError("face model failed")
    monkeypatch.setattr(pipe, "analyze_frame", failing)

    with pytest.raises(RuntimeError):
        pipe.analyze_image(img, settings)
    assert fake_mediapipe.closed


def test_caller_hand_model_stays_open(fake_deepface, fake_mediapipe, settings, tmp_path):
    img = _write(tmp_path / "face.png")
    hands = pipe.HandPoseEstimator(settings, static_image_mode=True)
    pipe.analyze_image(img, settings, hands=hands)
    assert not fake_mediapipe.closed and hands._hands is not None
    hands.close()


def test_analyze_samples_closes_its_hand_model(fake_deepface, fake_mediapipe, settings, tmp_path):
    _write(tmp_path / "sample1.jpg")
    settings.SAMPLES = ["sample1.jpg"]
    pipe.analyze_samples(settings)
    assert fake_mediapipe.closed
