#!/usr/bin/env python3
"""
Synthetic Analyzer Session
==========================

Standalone script that drives the analyzer with a simulated codec.

This script:
    1. Generates a synthetic reference clip in memory
    2. Runs an "encoder" thread and a "decoder" thread that report events
       for every frame and spatial layer, adding noise to decoded pictures
    3. Logs per-layer aggregate statistics at the end

No real codec is involved. It exercises event correlation, the executor
and PSNR evaluation end to end.

Usage:
    python scripts/run_synthetic_session.py --frames 120 --layers 2
    python scripts/run_synthetic_session.py --noise 4 --config harness.yaml
"""

import argparse
import logging
import os
import queue
import sys
import threading

import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from codec_analyzer import (
    EncodedImage,
    InMemoryReferenceSource,
    Resolution,
    VideoCodecAnalyzer,
    VideoFrame,
)
from codec_analyzer.config import load_config, setup_logging
from codec_analyzer.models.frame import scale_frame


logger = logging.getLogger(__name__)

FRAME_INTERVAL_RTP = 3000  # 30 fps at 90 kHz


def make_clip(num_frames: int, width: int, height: int, seed: int) -> list:
    """Generate a moving gradient clip."""
    rng = np.random.default_rng(seed)
    base = np.add.outer(np.arange(height), np.arange(width)).astype(np.float64)
    frames = []
    for i in range(num_frames):
        luma = (base + 2 * i + rng.normal(0, 2, base.shape)) % 256
        chroma = Resolution(width, height).chroma
        frames.append(VideoFrame(
            timestamp_rtp=i * FRAME_INTERVAL_RTP,
            y=luma.astype(np.uint8),
            u=np.full((chroma.height, chroma.width), 128, dtype=np.uint8),
            v=np.full((chroma.height, chroma.width), 128, dtype=np.uint8),
        ))
    return frames


def add_noise(frame: VideoFrame, sigma: float, rng: np.random.Generator) -> VideoFrame:
    """Simulate coding distortion."""
    def noisy(plane: np.ndarray) -> np.ndarray:
        out = plane.astype(np.float64) + rng.normal(0, sigma, plane.shape)
        return np.clip(np.round(out), 0, 255).astype(np.uint8)

    return VideoFrame(
        timestamp_rtp=frame.timestamp_rtp,
        y=noisy(frame.y),
        u=noisy(frame.u),
        v=noisy(frame.v),
    )


def _db(value) -> str:
    return "n/a" if value is None else f"{value:.2f}dB"


def run_session(args: argparse.Namespace) -> None:
    """Run encoder and decoder threads against one analyzer."""
    settings = load_config(args.config)
    setup_logging(settings)

    clip = make_clip(args.frames, args.width, args.height, args.seed)
    reference = InMemoryReferenceSource({f.timestamp_rtp: f for f in clip})
    analyzer = VideoCodecAnalyzer.from_settings(settings, reference_source=reference)

    # Layer l is downscaled by 2^(layers - 1 - l)
    layer_resolutions = [
        Resolution(
            args.width >> (args.layers - 1 - layer),
            args.height >> (args.layers - 1 - layer),
        )
        for layer in range(args.layers)
    ]
    logger.info(f"Layers: {[str(r) for r in layer_resolutions]}")

    bitstream: "queue.Queue" = queue.Queue()

    def encoder() -> None:
        rng = np.random.default_rng(args.seed + 1)
        for i, frame in enumerate(clip):
            analyzer.start_encode(frame)
            for layer, res in enumerate(layer_resolutions):
                encoded = EncodedImage(
                    timestamp_rtp=frame.timestamp_rtp,
                    spatial_index=layer,
                    size_bytes=int(res.width * res.height * rng.uniform(0.05, 0.15)),
                    keyframe=(i % args.keyframe_interval == 0),
                    qp=int(rng.integers(20, 40)),
                )
                analyzer.finish_encode(encoded)
                bitstream.put((encoded, res))
        bitstream.put(None)

    def decoder() -> None:
        rng = np.random.default_rng(args.seed + 2)
        while True:
            item = bitstream.get()
            if item is None:
                break
            encoded, res = item
            analyzer.start_decode(encoded)
            source = clip[encoded.timestamp_rtp // FRAME_INTERVAL_RTP]
            decoded = add_noise(scale_frame(source, res), args.noise, rng)
            analyzer.finish_decode(decoded, encoded.spatial_index)

    threads = [
        threading.Thread(target=encoder, name="encoder"),
        threading.Thread(target=decoder, name="decoder"),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = analyzer.get_stats()
    analyzer.close()

    logger.info("=" * 60)
    logger.info(f"Collected {len(stats)} frame records")
    for layer in range(args.layers):
        summary = stats.aggregate(spatial_layer_index=layer)
        logger.info(
            f"Layer {layer}: frames={summary.num_frames}, "
            f"decoded={summary.num_decoded}, bytes={summary.total_encoded_bytes}, "
            f"psnr_y={_db(summary.mean_psnr_y)} (min {_db(summary.min_psnr_y)}), "
            f"psnr_u={_db(summary.mean_psnr_u)}, psnr_v={_db(summary.mean_psnr_v)}"
        )
    logger.info("=" * 60)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a synthetic analyzer session")
    parser.add_argument("--frames", type=int, default=60, help="Number of frames")
    parser.add_argument("--width", type=int, default=320, help="Clip width")
    parser.add_argument("--height", type=int, default=180, help="Clip height")
    parser.add_argument("--layers", type=int, default=2, help="Spatial layers")
    parser.add_argument("--noise", type=float, default=2.0, help="Decode noise sigma")
    parser.add_argument("--keyframe-interval", type=int, default=30, help="Frames between keyframes")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    run_session(parser.parse_args())


if __name__ == "__main__":
    main()
