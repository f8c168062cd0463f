import contextlib
import time

import onnxruntime as ort


def determine_device(device_arg):
    """Determine the best device to use for inference"""
    if device_arg is None or device_arg == "auto":
        if "CUDAExecutionProvider" in ort.get_available_providers():
            return "cuda"
        else:
            return "cpu"
    return device_arg


class Profiler(contextlib.ContextDecorator):
    """
    Wall-clock profiler for pipeline stages.

    Usage:
        @Profiler() decorator or 'with Profiler():' context manager

    Example:
        profiler = Profiler()
        with profiler:
            run_inference(handle, image_bytes, 640)
        print(f"Inference time: {profiler.elapsed_time * 1000:.2f} ms")
    """

    def __init__(self, accumulated_time=0.0):
        self.accumulated_time = accumulated_time  # total across runs
        self.elapsed_time = 0.0  # last measurement
        self._start_time = 0.0

    def __enter__(self):
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.elapsed_time = time.perf_counter() - self._start_time
        self.accumulated_time += self.elapsed_time

    def reset(self):
        """Reset accumulated time counter for a new measurement session."""
        self.accumulated_time = 0.0
        self.elapsed_time = 0.0

    def get_fps(self, num_samples):
        """
        Calculate FPS (Frames Per Second) from the accumulated time.

        Args:
            num_samples (int): Number of images/samples processed

        Returns:
            float: FPS based on accumulated time
        """
        if self.accumulated_time > 0:
            return num_samples / self.accumulated_time
        return 0.0

    def get_avg_time_ms(self, num_operations):
        """Get average time per operation in milliseconds."""
        if num_operations > 0:
            return (self.accumulated_time / num_operations) * 1000
        return 0.0
