"""
Tests for the inference backends and output decoding.
"""

import random

import numpy as np
import pytest

from inference.backend import (
    Detection,
    InferenceError,
    ModelLoadError,
    decode_scores,
    to_probabilities,
    top_class,
)
from inference.scope import TensorScope
from inference.simulated_backend import SimulatedBackend, SimulatedConfig
from inference.tflite_backend import TFLiteBackend, TFLiteConfig, create_interpreter

from conftest import FakeInterpreter, SequenceRandom


class TestDecodeScores:
    def test_selects_highest_score(self):
        assert decode_scores([0.1, 0.6, 0.3], num_labels=3) == Detection(label_index=1, confidence=pytest.approx(0.6))

    def test_tie_first_index_wins(self):
        idx, score = top_class([0.5, 0.5])
        assert idx == 0
        assert score == 0.5

    def test_tie_decodes_to_first_index_above_threshold(self):
        detection = decode_scores([0.5, 0.5], num_labels=2, threshold=0.4)
        assert detection.label_index == 0

    def test_below_threshold_is_no_detection(self):
        assert decode_scores([0.4, 0.3, 0.3], num_labels=3) is None

    def test_threshold_is_exclusive(self):
        assert decode_scores([0.5, 0.5], num_labels=2) is None

    def test_index_outside_labels_is_no_detection(self):
        # Model emits 4 classes but only 3 labels are configured.
        assert decode_scores([0.0, 0.1, 0.1, 0.8], num_labels=3) is None

    def test_empty_output_is_no_detection(self):
        assert decode_scores([], num_labels=3) is None

    def test_accepts_batched_output(self):
        detection = decode_scores(np.array([[0.2, 0.7, 0.1]], dtype=np.float32), num_labels=3)
        assert detection.label_index == 1


class TestToProbabilities:
    def test_probabilities_pass_through(self):
        assert np.allclose(to_probabilities([0.1, 0.6, 0.3]), [0.1, 0.6, 0.3])

    def test_sigmoid_style_scores_kept(self):
        assert np.allclose(to_probabilities([0.9, 0.8]), [0.9, 0.8])

    def test_logits_softmaxed(self):
        probs = to_probabilities([2.0, -1.0, 0.5])
        assert probs.sum() == pytest.approx(1.0)
        assert int(np.argmax(probs)) == 0
        assert np.all((probs >= 0.0) & (probs <= 1.0))

    def test_empty(self):
        assert to_probabilities([]).size == 0


class TestSimulatedBackend:
    def test_detection_rate_and_confidence_range(self):
        backend = SimulatedBackend(num_labels=15, rng=random.Random(1234))
        ticks = 20000

        results = [backend.infer(None) for _ in range(ticks)]
        detections = [r for r in results if r is not None]

        rate = len(detections) / ticks
        assert 0.04 <= rate <= 0.06
        assert all(0.85 <= d.confidence <= 0.99 for d in detections)
        assert all(0 <= d.label_index < 15 for d in detections)

    def test_ignores_input(self):
        backend = SimulatedBackend(num_labels=3, rng=SequenceRandom([0.01, 0.0, 0.0]))
        detection = backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))
        assert detection == Detection(label_index=0, confidence=pytest.approx(0.85))

    def test_emit_uses_strict_less_than(self):
        backend = SimulatedBackend(num_labels=3, rng=SequenceRandom([0.05]))
        assert backend.infer(None) is None

    def test_label_index_stays_in_range(self):
        backend = SimulatedBackend(num_labels=15, rng=SequenceRandom([0.0, 0.9999999, 0.5]))
        detection = backend.infer(None)
        assert detection.label_index == 14
        assert detection.confidence == pytest.approx(0.92)

    def test_custom_probability(self):
        backend = SimulatedBackend(
            num_labels=2,
            cfg=SimulatedConfig(detection_probability=1.0),
            rng=random.Random(7),
        )
        assert all(backend.infer(None) is not None for _ in range(100))

    def test_ignores_input_tensor(self):
        backend = SimulatedBackend(num_labels=3, rng=SequenceRandom([0.0, 0.5, 0.0]))
        detection = backend.infer(np.ones((1, 224, 224, 3), dtype=np.float32))
        assert detection.label_index == 1
        assert detection.confidence == pytest.approx(0.85)

    def test_rejects_empty_label_set(self):
        with pytest.raises(ValueError):
            SimulatedBackend(num_labels=0)


class TestTFLiteBackend:
    def test_shapes_from_interpreter(self):
        backend = TFLiteBackend(FakeInterpreter([0.1, 0.9, 0.0]), num_labels=3)
        assert backend.input_shape == [1, 224, 224, 3]
        assert backend.output_shape == [1, 3]
        assert backend.input_size == (224, 224)

    def test_non_nhwc_input_has_no_spatial_size(self):
        backend = TFLiteBackend(FakeInterpreter([0.1], input_shape=(1, 3, 224, 224)), num_labels=1)
        assert backend.input_size is None

    def test_infer_decodes_output(self):
        interpreter = FakeInterpreter([0.1, 0.6, 0.3])
        backend = TFLiteBackend(interpreter, num_labels=3)

        detection = backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))

        assert detection.label_index == 1
        assert detection.confidence == pytest.approx(0.6)
        assert interpreter.invocations == 1

    def test_below_threshold_returns_none(self):
        backend = TFLiteBackend(FakeInterpreter([0.4, 0.3, 0.3]), num_labels=3)
        assert backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32)) is None

    def test_custom_threshold(self):
        backend = TFLiteBackend(FakeInterpreter([0.4, 0.3, 0.3]), num_labels=3, threshold=0.3)
        assert backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32)).label_index == 0

    def test_output_registered_with_scope(self):
        backend = TFLiteBackend(FakeInterpreter([0.1, 0.9]), num_labels=2)
        with TensorScope() as scope:
            backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32), scope)
            assert scope.live == 1
        assert scope.live == 0
        assert scope.released == 1

    def test_logits_output_normalized_to_probability(self):
        backend = TFLiteBackend(FakeInterpreter([0.2, 3.7]), num_labels=2)

        detection = backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))

        assert detection.label_index == 1
        assert detection.confidence == pytest.approx(1.0 / (1.0 + np.exp(-3.5)))
        assert 0.0 <= detection.confidence <= 1.0

    def test_quantized_output_dequantized(self):
        interpreter = FakeInterpreter([10, 240], output_dtype=np.uint8, quantization=(1.0 / 256, 0))
        backend = TFLiteBackend(interpreter, num_labels=2)

        detection = backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))

        assert detection.label_index == 1
        assert detection.confidence == pytest.approx(0.9375)

    def test_quantized_output_below_threshold(self):
        interpreter = FakeInterpreter([100, 120], output_dtype=np.uint8, quantization=(1.0 / 256, 0))
        backend = TFLiteBackend(interpreter, num_labels=2)

        assert backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32)) is None

    def test_integer_output_without_scale_uses_full_range(self):
        backend = TFLiteBackend(FakeInterpreter([0, 204], output_dtype=np.uint8), num_labels=2)

        detection = backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))

        assert detection.confidence == pytest.approx(0.8)

    def test_runtime_failure_raises_inference_error(self):
        backend = TFLiteBackend(FakeInterpreter([0.9], fail_on_invoke=RuntimeError("delegate crashed")), num_labels=1)
        with pytest.raises(InferenceError, match="delegate crashed"):
            backend.infer(np.zeros((1, 224, 224, 3), dtype=np.float32))

    def test_shape_mismatch_raises_inference_error(self):
        backend = TFLiteBackend(FakeInterpreter([0.9]), num_labels=1)
        with pytest.raises(InferenceError):
            backend.infer(np.zeros((1, 128, 128, 3), dtype=np.float32))

    def test_missing_tensor_raises_inference_error(self):
        backend = TFLiteBackend(FakeInterpreter([0.9]), num_labels=1)
        with pytest.raises(InferenceError):
            backend.infer(None)


class TestCreateInterpreter:
    def test_missing_model_file(self, tmp_path):
        cfg = TFLiteConfig(model_path=str(tmp_path / "missing.tflite"))
        with pytest.raises(ModelLoadError, match="not found"):
            create_interpreter(cfg)

    def test_configures_engine_before_loading(self, tmp_path, monkeypatch):
        model_file = tmp_path / "model.tflite"
        model_file.write_bytes(b"\x00")
        created = {}

        class RecordingInterpreter(FakeInterpreter):
            def __init__(self, **kwargs):
                created.update(kwargs)
                super().__init__([0.5])

            def allocate_tensors(self):
                created["allocated"] = True

        monkeypatch.setattr(
            "inference.tflite_backend._interpreter_api",
            lambda: (RecordingInterpreter, lambda path: f"delegate:{path}"),
        )

        cfg = TFLiteConfig(model_path=str(model_file), num_threads=2, delegate_library="libfake.so")
        create_interpreter(cfg)

        assert created["model_path"] == str(model_file)
        assert created["num_threads"] == 2
        assert created["experimental_delegates"] == ["delegate:libfake.so"]
        assert created["allocated"] is True

    def test_malformed_model_raises_model_load_error(self, tmp_path, monkeypatch):
        model_file = tmp_path / "model.tflite"
        model_file.write_bytes(b"not a flatbuffer")

        def broken_interpreter(**kwargs):
            raise ValueError("Model provided has model identifier 'not ', should be 'TFL3'")

        monkeypatch.setattr(
            "inference.tflite_backend._interpreter_api",
            lambda: (broken_interpreter, None),
        )

        with pytest.raises(ModelLoadError, match="TFL3"):
            create_interpreter(TFLiteConfig(model_path=str(model_file)))
