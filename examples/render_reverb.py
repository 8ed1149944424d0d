#!/usr/bin/env python3
"""Profile a shoebox room and apply its reverb to a WAV file.

This script demonstrates the end-to-end pipeline: it builds a closed room with
a speaker and a rectangular microphone, estimates the room's impulse response
by ray tracing, and convolves an input recording with it.

Usage:
    python -m examples.render_reverb INPUT [options]

Options:
    --output OUTPUT         Output WAV path (default: reverb_out.wav)
    --kernel-output PATH    Also save the kernel as .npy
    --room W H D            Room dimensions in meters (default: 100 100 100)
    --speaker X Y Z         Speaker position (default: 50 5 5)
    --microphone X Y Z      Microphone center (default: 50 5 95)
    --mic-size W H          Microphone width and height (default: 5 5)
    --samples SAMPLES       Number of rays (default: 100000)
    --max-bounces N         Reflections per ray (default: 10)
    --max-delay SECONDS     Longest arrival time (default: 30)
    --decay FRACTION        Amplitude lost per bounce (default: 0.05)
    --block-size N          Stream in blocks and keep the input length
    --seed SEED             Random seed for ray sampling (default: 0)
    --quiet                 Suppress progress output

Example:
    python -m examples.render_reverb dry.wav --room 10 10 30 --speaker 5 5 1 \\
        --microphone 5 5 28 --samples 20000
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Profile a shoebox room and apply its reverb to a WAV file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", type=str, help="Input WAV file")
    parser.add_argument(
        "--output",
        type=str,
        default="reverb_out.wav",
        help="Output WAV path (default: reverb_out.wav)",
    )
    parser.add_argument(
        "--kernel-output",
        type=str,
        default=None,
        help="Also save the kernel as .npy",
    )
    parser.add_argument(
        "--room",
        type=float,
        nargs=3,
        default=[100.0, 100.0, 100.0],
        metavar=("W", "H", "D"),
        help="Room dimensions in meters (default: 100 100 100)",
    )
    parser.add_argument(
        "--speaker",
        type=float,
        nargs=3,
        default=[50.0, 5.0, 5.0],
        metavar=("X", "Y", "Z"),
        help="Speaker position (default: 50 5 5)",
    )
    parser.add_argument(
        "--microphone",
        type=float,
        nargs=3,
        default=[50.0, 5.0, 95.0],
        metavar=("X", "Y", "Z"),
        help="Microphone center (default: 50 5 95)",
    )
    parser.add_argument(
        "--mic-size",
        type=float,
        nargs=2,
        default=[5.0, 5.0],
        metavar=("W", "H"),
        help="Microphone width and height (default: 5 5)",
    )
    parser.add_argument("--samples", type=int, default=100000, help="Number of rays (default: 100000)")
    parser.add_argument("--max-bounces", type=int, default=10, help="Reflections per ray (default: 10)")
    parser.add_argument("--max-delay", type=float, default=30.0, help="Longest arrival time (default: 30)")
    parser.add_argument("--decay", type=float, default=0.05, help="Amplitude lost per bounce (default: 0.05)")
    parser.add_argument(
        "--block-size",
        type=int,
        default=None,
        help="Stream in blocks and keep the input length",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed for ray sampling (default: 0)")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_reverb(args: argparse.Namespace) -> Path:
    """Profile the room described by ``args`` and write the reverberated file.

    Returns:
        Path to the written WAV file.
    """
    # Lazy imports to allow Taichi initialization first
    from rayverb.audio import apply_reverb, read_wav, save_kernel, write_wav
    from rayverb.core.profiler import ProfileSettings, RoomProfiler
    from rayverb.scene.room import RoomParams, create_room_scene

    quiet = args.quiet
    clip = read_wav(args.input)
    if not quiet:
        print(f"Loaded {args.input}: {clip.channels} channel(s), {clip.duration:.2f}s at {clip.sample_rate} Hz")

    params = RoomParams(
        room_width=args.room[0],
        room_height=args.room[1],
        room_depth=args.room[2],
        speaker_x=args.speaker[0],
        speaker_y=args.speaker[1],
        speaker_z=args.speaker[2],
        microphone_width=args.mic_size[0],
        microphone_height=args.mic_size[1],
        microphone_x=args.microphone[0],
        microphone_y=args.microphone[1],
        microphone_z=args.microphone[2],
    )
    settings = ProfileSettings(
        samples=args.samples,
        max_bounces=args.max_bounces,
        max_delay=args.max_delay,
        decay=args.decay,
        sample_rate=float(clip.sample_rate),
    )

    _, speaker = create_room_scene(params)
    profiler = RoomProfiler(speaker, settings, raise_on_empty=True)

    if not quiet:
        print(f"Tracing {settings.samples} rays...")
    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            rays_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} rays "
                f"({progress_pct:.1f}%) - {rays_per_sec:.0f} rays/s",
                end="",
                flush=True,
            )

    profiler.run(callback=progress_callback)
    kernel = profiler.kernel()

    if not quiet:
        print()  # Newline after progress
        print(f"Kernel: {len(kernel)} samples, {profiler.hit_count} hits")

    if args.kernel_output:
        save_kernel(args.kernel_output, kernel)

    wet = apply_reverb(clip, kernel, block_size=args.block_size)
    output_file = Path(args.output)
    write_wav(output_file, wet)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    ti.init(arch=ti.cpu, default_fp=ti.f64, random_seed=args.seed)

    try:
        render_reverb(args)
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
