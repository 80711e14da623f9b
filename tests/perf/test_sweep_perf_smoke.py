from __future__ import annotations

import json
import logging
import platform
import sys
import time
import warnings
from pathlib import Path

import pytest

from common.env import env_bool
from geometry.copies import layout_copies
from geometry.polygon import PolygonSpec
from sweep.config import EngineConfig
from sweep.engine import LayerParams, TriggerEngine, build_candidates

logger = logging.getLogger(__name__)

BASELINE_DIR = Path(__file__).resolve().parents[1] / "_snapshots" / "perf"


def _load_baseline(name: str) -> float | None:
    path = BASELINE_DIR / f"{name}.json"
    if not path.exists():
        return None
    try:
        return float(json.loads(path.read_text(encoding="utf-8"))["seconds"])
    except (OSError, ValueError, KeyError, TypeError):
        return None


def _maybe_update_baseline(name: str, seconds: float) -> None:
    """PSW_UPDATE_SNAPSHOTS=1 のときだけベースラインを書き出す。"""
    if not env_bool("PSW_UPDATE_SNAPSHOTS", False):
        return
    BASELINE_DIR.mkdir(parents=True, exist_ok=True)
    payload = {
        "seconds": seconds,
        "note": "Auto-updated by tests when PSW_UPDATE_SNAPSHOTS=1",
        "env": {"platform": platform.platform(), "python": sys.version.split()[0]},
    }
    (BASELINE_DIR / f"{name}.json").write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _report(name: str, measured: float) -> None:
    baseline = _load_baseline(name)
    _maybe_update_baseline(name, measured)
    if baseline is None:
        logger.info(
            "perf[%s] measured=%.2fms (no baseline). Set PSW_UPDATE_SNAPSHOTS=1 to record.",
            name,
            measured * 1e3,
        )
        return
    ratio = measured / baseline if baseline > 0 else float("inf")
    msg = f"perf[{name}] measured={measured*1e3:.2f}ms baseline={baseline*1e3:.2f}ms ratio={ratio:.2f}x"
    # 失敗はさせず警告のみ
    if ratio > 1.30:
        warnings.warn("Performance regression >30%: " + msg)
    else:
        logger.info(msg)


def _heavy_layer() -> LayerParams:
    return LayerParams(
        PolygonSpec(9, 4, 1.0),
        copies=layout_copies(6, 0.85, 12.0),
        use_intersections=True,
        use_stars=True,
        use_cuts=True,
        subdivisions=2,
    )


@pytest.mark.perf
def test_perf_candidate_rebuild():
    """候補点の再構築（星形 9/4 × 6 複製）。最小値を計測し、ログのみ。"""
    cfg = EngineConfig()
    params = _heavy_layer()
    # ウォームアップ（JIT コンパイル込み）
    build_candidates(params, cfg, use_numba=cfg.resolve_use_numba())

    times: list[float] = []
    for _i in range(3):
        t0 = time.perf_counter()
        cands = build_candidates(params, cfg, use_numba=cfg.resolve_use_numba())
        times.append(time.perf_counter() - t0)
    assert cands
    _report("sweep_candidate_rebuild_v1", min(times))


@pytest.mark.perf
def test_perf_steady_state_tick():
    """再構築なしのフレーム処理（交差判定＋マーカー更新）の 1 フレーム平均。"""
    engine = TriggerEngine()
    engine.set_layer(_heavy_layer())
    engine.tick(0.0, 0.0)

    frames = 240
    dt = 1.0 / 60.0
    t0 = time.perf_counter()
    for i in range(1, frames + 1):
        engine.tick(i * dt, i * 0.05)
    measured = (time.perf_counter() - t0) / frames
    _report("sweep_steady_state_tick_v1", measured)
