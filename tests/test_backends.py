# tests/test_backends.py
"""
Tests for the ONNX backend, session handles and end-to-end inference.
"""
import numpy as np
import pytest

from conftest import IMGSZ
from harupan.errors import InferenceRuntimeError, LoadError
from harupan.inference import SessionHandle, make_backend, run_inference
from harupan.inference.model.backends import OnnxBackend
from harupan.preprocess import prepare


class TestMakeBackend:
    def test_onnx_backend_selected(self, static_model):
        backend = make_backend(str(static_model), "cpu")

        assert isinstance(backend, OnnxBackend)
        assert backend.input_names == ["images"]
        assert backend.output_names == ["output"]
        backend.close()

    def test_invalid_extension(self, tmp_path):
        path = tmp_path / "model.pt"
        path.write_bytes(b"")
        with pytest.raises(LoadError, match="Unsupported model format"):
            make_backend(str(path), "cpu")

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="not found"):
            make_backend(str(tmp_path / "missing.onnx"), "cpu")

    def test_corrupt_model(self, assets_dir):
        with pytest.raises(LoadError):
            make_backend(str(assets_dir / "broken.onnx"), "cpu")


class TestOnnxBackend:
    def test_predict_returns_all_outputs(self, static_model):
        backend = OnnxBackend(str(static_model), "cpu")
        batch = np.random.rand(1, 3, IMGSZ, IMGSZ).astype(np.float32)

        outputs = backend.predict(batch)

        assert len(outputs) == 1
        np.testing.assert_array_equal(outputs[0], batch)
        backend.close()

    def test_shape_mismatch(self, static_model):
        backend = OnnxBackend(str(static_model), "cpu")
        with pytest.raises(InferenceRuntimeError, match="shape mismatch"):
            backend.predict(np.zeros((1, 3, IMGSZ * 2, IMGSZ * 2), dtype=np.float32))

    def test_rank_mismatch(self, static_model):
        backend = OnnxBackend(str(static_model), "cpu")
        with pytest.raises(InferenceRuntimeError, match="rank mismatch"):
            backend.predict(np.zeros((3, IMGSZ, IMGSZ), dtype=np.float32))

    def test_dynamic_dims_accept_any_size(self, dynamic_model):
        backend = OnnxBackend(str(dynamic_model), "cpu")
        batch = np.ones((1, 3, 5, 11), dtype=np.float32)

        outputs = backend.predict(batch)

        assert outputs[0].shape == (1, 3, 5, 11)

    def test_predict_after_close(self, static_model):
        backend = OnnxBackend(str(static_model), "cpu")
        backend.close()
        with pytest.raises(InferenceRuntimeError, match="Session not loaded"):
            backend.predict(np.zeros((1, 3, IMGSZ, IMGSZ), dtype=np.float32))

    def test_warmup(self, static_model):
        backend = OnnxBackend(str(static_model), "cpu")
        backend.warmup(np.zeros((1, 3, IMGSZ, IMGSZ), dtype=np.float32), runs=3)


class TestSessionHandle:
    def test_predict_returns_first_output(self, static_model, noise_png):
        with SessionHandle(str(static_model), "cpu") as handle:
            tensor = prepare(noise_png, IMGSZ)
            output = handle.predict(tensor)

        np.testing.assert_array_equal(output, tensor.as_batch())

    def test_context_manager_closes(self, static_model):
        with SessionHandle(str(static_model), "cpu") as handle:
            assert not handle.closed
        assert handle.closed
        assert "closed" in repr(handle)

    def test_close_is_idempotent(self, static_model):
        handle = SessionHandle(str(static_model), "cpu")
        handle.close()
        handle.close()

    def test_predict_on_closed_handle(self, static_model, noise_png):
        handle = SessionHandle(str(static_model), "cpu")
        handle.close()
        with pytest.raises(InferenceRuntimeError, match="Session not loaded"):
            handle.predict(prepare(noise_png, IMGSZ))

    def test_injected_backend(self, noise_png):
        backend = MockBackend([[[0.5, 1.5]], "ignored"])
        handle = SessionHandle("mock.onnx", "cpu", backend=backend)

        assert run_inference(handle, noise_png, 4) == [0.5, 1.5]
        assert backend.batches[0].shape == (1, 3, 4, 4)

        handle.close()
        assert backend.closed

    def test_no_outputs(self, noise_png):
        handle = SessionHandle("mock.onnx", "cpu", backend=MockBackend([]))
        with pytest.raises(InferenceRuntimeError, match="no outputs"):
            handle.predict(prepare(noise_png, 2))

    def test_warmup_skipped_without_support(self):
        backend = MockBackend([1.0])
        handle = SessionHandle("mock.onnx", "cpu", backend=backend)
        handle.warmup(np.zeros((1, 3, 2, 2), dtype=np.float32))

        assert backend.batches == []

    def test_warmup_defaults_to_zero_batch(self, static_model):
        with SessionHandle(str(static_model), "cpu") as handle:
            handle.warmup(runs=1)

    def test_warmup_without_batch_needs_static_dims(self, dynamic_model):
        with SessionHandle(str(dynamic_model), "cpu") as handle:
            with pytest.raises(ValueError, match="explicit batch"):
                handle.warmup()

    def test_warmup_without_batch_or_input_shape(self):
        handle = SessionHandle("mock.onnx", "cpu", backend=MockBackend([1.0]))
        with pytest.raises(ValueError):
            handle.warmup()


class TestRunInference:
    def test_identity_model_returns_prepared_tensor(self, static_model, noise_png):
        with SessionHandle(str(static_model), "cpu") as handle:
            result = run_inference(handle, noise_png, IMGSZ)

        expected = prepare(noise_png, IMGSZ).data.tolist()
        assert result == expected
        assert len(result) == 3 * IMGSZ * IMGSZ

    def test_solid_red_round_trip(self, dynamic_model, png_bytes):
        with SessionHandle(str(dynamic_model), "cpu") as handle:
            result = run_inference(handle, png_bytes((255, 0, 0)), 3)

        assert result == [1.0] * 9 + [0.0] * 18

    def test_wrong_imgsz_for_static_model(self, static_model, noise_png):
        with SessionHandle(str(static_model), "cpu") as handle:
            with pytest.raises(InferenceRuntimeError):
                run_inference(handle, noise_png, IMGSZ + 1)


class MockBackend:
    """Backend stand-in returning canned outputs."""

    def __init__(self, outputs):
        self.outputs = outputs
        self.batches = []
        self.closed = False

    def predict(self, batch):
        self.batches.append(batch)
        return self.outputs

    def close(self):
        self.closed = True
