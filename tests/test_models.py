"""
Smoke tests for typed models and adapters.
"""

import pytest

from models.prediction import DetectionStatus, ModelState, Prediction


class TestModelState:
    def test_only_loading_is_not_ready(self):
        assert not ModelState.LOADING.is_ready
        assert ModelState.READY_REAL.is_ready
        assert ModelState.READY_SIMULATED.is_ready

    def test_string_values(self):
        assert ModelState("ready_simulated") is ModelState.READY_SIMULATED
        assert ModelState.LOADING == "loading"


class TestPrediction:
    def test_confidence_pct_rounds(self):
        assert Prediction(label="Yes", label_index=2, confidence=0.876).confidence_pct == 88
        assert Prediction(label="Yes", label_index=2, confidence=0.5).confidence_pct == 50

    def test_frozen(self):
        pred = Prediction(label="Yes", label_index=2, confidence=0.9)
        with pytest.raises(Exception):
            pred.confidence = 0.1

    def test_to_dict(self):
        pred = Prediction(label="Help", label_index=7, confidence=0.92, timestamp=1.0)
        assert pred.to_dict() == {"label": "Help", "label_index": 7, "confidence": 0.92, "timestamp": 1.0}


class TestDetectionStatus:
    def test_simulated_flag(self):
        status = DetectionStatus(ModelState.READY_SIMULATED, detecting=False, prediction=None, error=None)
        assert status.is_simulated

        status = DetectionStatus(ModelState.READY_REAL, detecting=False, prediction=None, error=None)
        assert not status.is_simulated

    def test_confidence_follows_prediction(self):
        pred = Prediction(label="Hello", label_index=0, confidence=0.7)
        status = DetectionStatus(ModelState.READY_REAL, detecting=True, prediction=pred, error=None)
        assert status.confidence == 0.7

    def test_to_dict_flattens_prediction(self):
        pred = Prediction(label="Hello", label_index=0, confidence=0.7)
        data = DetectionStatus(ModelState.READY_REAL, True, pred, "oops").to_dict()

        assert data["model_state"] == "ready_real"
        assert data["prediction"] == "Hello"
        assert data["confidence"] == 0.7
        assert data["error"] == "oops"
