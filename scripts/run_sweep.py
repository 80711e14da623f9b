#!/usr/bin/env python3
"""
Headless sweep runner.

Drives a TriggerEngine for a fixed number of frames at a fixed frame rate and
logs every emitted trigger. Layer and engine defaults come from
`configs/default.yaml` (root `config.yaml` overrides); command-line flags win.

Usage (from repo root):
    python scripts/run_sweep.py --frames 240
    python scripts/run_sweep.py --n 7 --k 3 --copies 4 --bpm 180 --quantization 1/8
    PSW_DEBUG_TRIGGERS=1 python scripts/run_sweep.py --frames 60

Notes:
    - Time is simulated (frame index / fps), so output is deterministic.
    - Exit code is 2 when the layer or engine parameters are invalid.
"""

from __future__ import annotations

import argparse
import logging
import math
from typing import Any, Mapping, Optional, Sequence

from common.config import load_config
from common.logging import setup_default_logging
from geometry.copies import layout_copies
from geometry.polygon import PolygonSpec
from sweep.clock import FrameClock, RotationClock, SweepDriver
from sweep.config import EngineConfig
from sweep.engine import LayerParams, TriggerEngine
from sweep.mapping import TriggerEvent

logger = logging.getLogger("run_sweep")


def build_parser(layer: Mapping[str, Any]) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run a headless polygon sweep and log triggers.")
    ap.add_argument("--frames", type=int, default=240)
    ap.add_argument("--fps", type=float, default=60.0)
    ap.add_argument("--bpm", type=float, default=None, help="overrides engine.bpm")
    ap.add_argument("--n", type=int, default=int(layer.get("n", 5)))
    ap.add_argument("--k", type=int, default=int(layer.get("k", 1)))
    ap.add_argument("--radius", type=float, default=float(layer.get("radius", 1.0)))
    ap.add_argument("--copies", type=int, default=int(layer.get("copies", 1)))
    ap.add_argument("--step-scale", type=float, default=float(layer.get("step_scale", 1.0)))
    ap.add_argument("--angle-deg", type=float, default=float(layer.get("angle_deg", 0.0)))
    ap.add_argument("--subdivisions", type=int, default=int(layer.get("subdivisions", 1)))
    ap.add_argument("--euclid-pulses", type=int, default=layer.get("euclid_pulses"))
    ap.add_argument("--no-stars", action="store_true", help="treat k as 1")
    ap.add_argument("--no-cuts", action="store_true", help="skip star self-intersections")
    ap.add_argument("--no-intersections", action="store_true", help="skip inter-copy intersections")
    ap.add_argument("--quantization", default=None, help='beat grid such as "1/4" or "1/8T"')
    ap.add_argument("--log-level", default="INFO")
    return ap


def build_layer(args: argparse.Namespace, layer: Mapping[str, Any]) -> LayerParams:
    return LayerParams(
        spec=PolygonSpec(args.n, args.k, args.radius),
        copies=layout_copies(args.copies, args.step_scale, args.angle_deg),
        use_intersections=bool(layer.get("use_intersections", True)) and not args.no_intersections,
        use_stars=bool(layer.get("use_stars", True)) and not args.no_stars,
        use_cuts=bool(layer.get("use_cuts", True)) and not args.no_cuts,
        subdivisions=args.subdivisions,
        euclid_pulses=args.euclid_pulses,
    )


def run(frames: int, fps: float, engine: TriggerEngine, bpm: float) -> list[TriggerEvent]:
    """シミュレート時刻で `frames` フレーム進め、発行されたイベントを返す。"""
    collected: list[TriggerEvent] = []

    def _on_events(events: Sequence[TriggerEvent]) -> None:
        for ev in events:
            logger.info(
                "t=%.4f %-22s f=%8.2f Hz pan=%+.2f vel=%.2f dur=%.2f%s",
                ev.time,
                ev.source_kind.value,
                ev.frequency,
                ev.pan,
                ev.velocity,
                ev.duration,
                f" ({ev.note_name})" if ev.note_name else "",
            )
        collected.extend(events)

    driver = SweepDriver(engine, RotationClock(bpm), on_events=_on_events)
    FrameClock([driver], fixed_dt=1.0 / fps).run(frames)
    return collected


def main(argv: Optional[Sequence[str]] = None) -> int:
    cfg = load_config()
    layer_cfg = cfg.get("layer") or {}
    args = build_parser(layer_cfg).parse_args(argv)
    setup_default_logging(args.log_level)

    try:
        if not (args.fps > 0.0 and math.isfinite(args.fps)):
            raise ValueError(f"fps must be a positive finite number: got {args.fps}")
        engine_cfg = EngineConfig.from_mapping(cfg.get("engine") or {})
        overrides: dict[str, Any] = {}
        if args.bpm is not None:
            overrides["bpm"] = args.bpm
        if args.quantization is not None:
            overrides["quantization"] = args.quantization
        if overrides:
            engine_cfg = engine_cfg.with_changes(**overrides)
        layer = build_layer(args, layer_cfg)
    except ValueError as exc:  # InvalidPolygonSpec / InvalidEngineConfig
        logger.error("invalid parameters: %s", exc)
        return 2

    engine = TriggerEngine(engine_cfg)
    engine.set_layer(layer)
    events = run(args.frames, args.fps, engine, engine_cfg.bpm)
    logger.info(
        "%d frames, %d candidates, %d triggers", args.frames, len(engine.candidates), len(events)
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
