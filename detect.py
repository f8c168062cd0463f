"""
Run ONNX inference on images and collect the flattened model outputs.

Usage:
    $ python detect.py --assets_dir ./assets --model detector.onnx --img_path ./images
    $ python detect.py --config config.yml --img_path photo.jpg --imgsz 320 --output out.json
"""

import argparse
import json
import os
import time
from pathlib import Path

import numpy as np
from easydict import EasyDict as edict

from harupan.config import load_config, with_defaults
from harupan.errors import HarupanError, LoadError
from harupan.general import Profiler, determine_device
from harupan.inference import ModelProvider, run_inference
from harupan.utils import get_logger, merge_config, setup_logging

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff"}


def parse_args():
    parser = argparse.ArgumentParser(
        description="Run ONNX inference on images and output flattened results."
    )

    # Config file
    parser.add_argument(
        "--config", type=str, default=None, help="Path to config.yml/.json"
    )

    # Model parameters
    parser.add_argument(
        "--assets_dir",
        type=str,
        default=None,
        help="Directory holding bundled model assets.",
    )
    parser.add_argument(
        "--files_dir",
        type=str,
        default=None,
        help="Local directory the model asset is copied into.",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model asset path relative to assets_dir (.onnx)",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        choices=["auto", "cpu", "cuda"],
        help="Device to run inference on (auto will choose cuda if available)",
    )
    parser.add_argument(
        "--warmup_runs",
        type=int,
        default=None,
        help="Number of warm-up runs before timing inference.",
    )

    # Data parameters
    parser.add_argument(
        "--img_path",
        default=None,
        type=str,
        help="Image file or folder of images to run inference on.",
    )
    parser.add_argument(
        "--imgsz",
        type=int,
        default=None,
        help="Square side length the images are resized to.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write {image name: flattened output} JSON to this file.",
    )

    # Logging parameters
    parser.add_argument(
        "--log_level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level.",
    )

    return parser.parse_args()


def collect_images(img_path):
    """Return the sorted image files under ``img_path`` (or ``img_path`` itself)."""
    path = Path(img_path)
    if not path.exists():
        raise FileNotFoundError(f"Image path not found: {img_path}")
    if path.is_file():
        return [path]
    return sorted(
        p for p in path.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
    )


def main():
    args = parse_args()

    cfg = load_config(args.config)
    config = edict(with_defaults(merge_config(args, cfg)))

    # Setup logging first
    setup_logging(enabled=True, log_level=config.log_level)
    logger = get_logger("harupan.detect")

    if not config.get("img_path"):
        logger.error("img_path is required (via --img_path or config)")
        return 1

    if not config.get("model"):
        logger.error("model is required (via --model or config)")
        return 1

    if config.imgsz <= 0:
        logger.error("imgsz must be positive, got %s", config.imgsz)
        return 1

    profilers = {
        "model_loading": Profiler(),
        "inference": Profiler(),
    }
    logger.info("Starting inference process")
    logger.info(f"Final config: {dict(config)}")

    total_start_time = time.time()

    images = collect_images(config.img_path)
    device_str = determine_device(config.device)
    logger.info(f"Selected device: {device_str}")
    logger.info(f"Found {len(images)} image(s) under {os.path.realpath(config.img_path)}")

    provider = ModelProvider(config.assets_dir, config.files_dir, device=device_str)
    try:
        try:
            with profilers["model_loading"]:
                handle = provider.ensure_loaded(config.model)
        except LoadError as e:
            logger.error(f"Failed to load model {config.model}: {e}")
            return 1
        logger.info(
            "Model loaded in %.2f ms", profilers["model_loading"].elapsed_time * 1000
        )

        if config.warmup_runs > 0:
            dummy = np.zeros((1, 3, config.imgsz, config.imgsz), dtype=np.float32)
            handle.warmup(batch=dummy, runs=config.warmup_runs)

        results = {}
        failures = 0
        for image_path in images:
            try:
                with profilers["inference"]:
                    results[image_path.name] = run_inference(
                        handle, image_path.read_bytes(), config.imgsz
                    )
            except HarupanError as e:
                failures += 1
                logger.error(f"Inference failed for {image_path.name}: {e}")
                continue
            logger.info(
                "%s: %d values in %.2f ms",
                image_path.name,
                len(results[image_path.name]),
                profilers["inference"].elapsed_time * 1000,
            )
    finally:
        provider.close()

    processed = len(results)
    logger.info("=" * 60)
    logger.info("Processed %d image(s), %d failure(s)", processed, failures)
    logger.info(
        "Inference: avg %.2f ms, %.1f FPS",
        profilers["inference"].get_avg_time_ms(processed),
        profilers["inference"].get_fps(processed),
    )
    logger.info("Total time: %.2f s", time.time() - total_start_time)

    if config.get("output"):
        output_path = Path(config.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(results))
        logger.info(f"Results written to {output_path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
