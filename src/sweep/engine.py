"""
どこで: `sweep.engine`（トリガエンジンのオーケストレーション）。
何を: レイヤパラメータから候補点集合を構築し、フレーム毎に交差判定 → マーカー更新 → イベント発行を行う。
なぜ: 幾何の再計算とフレーム毎の判定を 1 つの `tick(now, rotation)` 入口に順序付けて閉じ込めるため。

フレーム内の手順:
(a) `LayerParams`（または幾何に効く設定）が変わっていれば候補点を作り直し、ACTIVE マーカーを再武装する。
    このフレームは交差判定を行わない。
(b) それ以外は前回角 → 今回角の弧で交差判定。
(c) 交差集合をマーカー管理へ渡す（判定はマーカー変更より先に完了している）。
(d) 発行イベントと生存マーカーのスナップショットを返す。

候補点集合は不変タプルとして丸ごと差し替える（読み手が構築途中の集合を見ることはない）。
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import numpy as np

from common import settings
from geometry.candidates import CandidatePoint, PointAccumulator, PointKey, PointKind, merge_threshold
from geometry.copies import Copy
from geometry.pairwise import find_pairwise_intersections
from geometry.polygon import PolygonSpec, euclidean_vertices, generate_vertices, subdivide_ring
from geometry.star import find_self_intersections

from .config import GEOMETRY_FIELDS, EngineConfig
from .crossing import CrossingDetector, RotationState
from .mapping import TriggerEvent, TriggerMapper
from .markers import MarkerLifecycleManager, MarkerView
from .quantize import TriggerQuantizer

logger = logging.getLogger(__name__)

BUDGET_WARN_INTERVAL = 1.0


@dataclass(frozen=True)
class LayerParams:
    """候補点集合を決める幾何パラメータ。等価比較で変更を検出する。

    Attributes
    ----------
    spec : PolygonSpec
        ベース多角形。
    copies : tuple[Copy, ...]
        複製の静的レイアウト（空なら候補点なし）。
    use_intersections : bool
        複製間交点を候補に含める。
    use_stars : bool
        `spec.k > 1` を星形として扱う（偽なら k を無視して正多角形）。
    use_cuts : bool
        星形の自己交差点を候補に含める（`use_stars` が真のときのみ）。
    subdivisions : int
        各辺の分割数（1 で分割なし）。分割点も頂点候補になる。
    euclid_pulses : int | None
        正多角形の頂点をユークリッド配置で間引く。
    """

    spec: PolygonSpec
    copies: tuple[Copy, ...] = (Copy(0),)
    use_intersections: bool = False
    use_stars: bool = False
    use_cuts: bool = False
    subdivisions: int = 1
    euclid_pulses: Optional[int] = None

    def __post_init__(self) -> None:
        # list で渡されても等価比較/ハッシュできるようタプル化
        object.__setattr__(self, "copies", tuple(self.copies))
        if self.subdivisions < 1:
            raise ValueError(f"subdivisions must be >= 1: got {self.subdivisions}")

    @property
    def effective_spec(self) -> PolygonSpec:
        if self.use_stars or self.spec.k == 1:
            return self.spec
        return PolygonSpec(self.spec.n, 1, self.spec.radius)


@dataclass(frozen=True)
class FrameResult:
    events: tuple[TriggerEvent, ...] = ()
    markers: tuple[MarkerView, ...] = ()
    rebuilt: bool = False
    elapsed_ms: float = field(default=0.0, compare=False)


def build_candidates(
    params: LayerParams,
    config: EngineConfig,
    *,
    use_numba: bool = True,
) -> tuple[CandidatePoint, ...]:
    """レイヤパラメータから候補点集合を構築する（純関数。同一入力なら同一出力）。

    追加順は 頂点 → 自己交差 → 複製間交差。閾値以内の点は先に追加された側が残る。
    """
    spec = params.effective_spec
    if params.euclid_pulses is not None and not spec.is_star:
        ring = euclidean_vertices(spec, params.euclid_pulses)
    else:
        ring = generate_vertices(spec)
    draw_ring = subdivide_ring(ring, params.subdivisions)
    threshold = merge_threshold(spec.radius, config.merge_ratio)

    acc = PointAccumulator(threshold)
    dropped = 0

    def _extend(points: np.ndarray, kind: PointKind) -> None:
        nonlocal dropped
        if points.shape[0] == 0:
            return
        finite = np.isfinite(points).all(axis=1)
        dropped += int((~finite).sum())
        acc.extend(points[finite], kind)

    for copy in params.copies:
        _extend(copy.apply(draw_ring), PointKind.VERTEX)

    if params.use_stars and params.use_cuts and spec.is_star:
        star_hits = find_self_intersections(ring, spec.k, threshold, use_numba=use_numba)
        if star_hits:
            local = np.array([p.position for p in star_hits], dtype=np.float64)
            for copy in params.copies:
                _extend(copy.apply(local), PointKind.SELF_INTERSECTION)

    pair_hits = find_pairwise_intersections(
        ring, params.copies, threshold, enabled=params.use_intersections, use_numba=use_numba
    )
    if pair_hits:
        _extend(np.array([p.position for p in pair_hits], dtype=np.float64), PointKind.PAIRWISE_INTERSECTION)

    if dropped:
        logger.debug("dropped %d non-finite candidate points", dropped)
    return acc.points()


class TriggerEngine:
    """フレーム駆動のトリガエンジン。

    Examples
    --------
    >>> engine = TriggerEngine(EngineConfig())
    >>> engine.set_layer(LayerParams(PolygonSpec(5, 2), use_stars=True, use_cuts=True))
    >>> result = engine.tick(0.0, RotationState(0.0, 0.0))
    """

    def __init__(self, config: EngineConfig | None = None):
        self._config = config if config is not None else EngineConfig()
        self._params: Optional[LayerParams] = None
        self._dirty = False
        self._candidates: tuple[CandidatePoint, ...] = ()
        self._by_key: dict[PointKey, CandidatePoint] = {}
        self._detector = CrossingDetector(self._config.multi_revolution_policy)
        self._markers = MarkerLifecycleManager(self._config.marker_lifetime, self._config.max_velocity)
        self._mapper = TriggerMapper(self._config)
        self._quantizer = self._make_quantizer(self._config)
        self._last_now: Optional[float] = None
        self._last_angle = 0.0
        self._last_budget_warning = -math.inf

    # --- 設定 ---
    @property
    def config(self) -> EngineConfig:
        return self._config

    @staticmethod
    def _make_quantizer(config: EngineConfig) -> Optional[TriggerQuantizer]:
        if config.quantization is None:
            return None
        return TriggerQuantizer(config.quantization, config.bpm)

    def update_config(self, **changes: Any) -> EngineConfig:
        """設定を変更する。不正値は `InvalidEngineConfig` で、その場合は何も変わらない。"""
        old = self._config
        new = old.with_changes(**changes)
        self._config = new
        self._detector.policy = new.multi_revolution_policy
        self._markers.lifetime = new.marker_lifetime
        self._markers.max_velocity = new.max_velocity
        self._mapper.config = new
        if (new.quantization, new.bpm) != (old.quantization, old.bpm):
            if self._quantizer is not None and self._quantizer.pending_count():
                logger.debug("quantizer replaced; dropping %d pending triggers", self._quantizer.pending_count())
            self._quantizer = self._make_quantizer(new)
        if any(getattr(old, name) != getattr(new, name) for name in GEOMETRY_FIELDS):
            self._dirty = self._params is not None
        return new

    # --- レイヤ ---
    def set_layer(self, params: LayerParams) -> None:
        if params != self._params:
            self._params = params
            self._dirty = True

    @property
    def layer(self) -> Optional[LayerParams]:
        return self._params

    @property
    def candidates(self) -> tuple[CandidatePoint, ...]:
        return self._candidates

    @property
    def markers(self) -> MarkerLifecycleManager:
        return self._markers

    def _rebuild(self, now: float) -> None:
        assert self._params is not None
        t0 = time.perf_counter()
        candidates = build_candidates(self._params, self._config, use_numba=self._config.resolve_use_numba())
        self._candidates = candidates
        self._by_key = {c.key: c for c in candidates}
        self._detector.set_candidates(candidates)
        self._mapper.reference_radius = max((c.radius for c in candidates), default=self._params.spec.radius)
        self._markers.arm(candidates, now)
        self._dirty = False
        logger.debug(
            "rebuilt %d candidates (%s) in %.2f ms",
            len(candidates),
            ", ".join(f"{k.value}={sum(1 for c in candidates if c.kind is k)}" for k in PointKind),
            (time.perf_counter() - t0) * 1000.0,
        )

    # --- フレーム ---
    def tick(self, now: float, rotation: Union[RotationState, float]) -> FrameResult:
        """1 フレーム進める。

        Parameters
        ----------
        now : float
            単調増加時刻 [s]。前回との差分が dt になる（dt <= 0 なら交差も減衰も無し）。
        rotation : RotationState | float
            前回角/今回角。float の場合は前回 `tick` の角度を前回角とする。
        """
        t0 = time.perf_counter()
        if not isinstance(rotation, RotationState):
            rotation = RotationState(self._last_angle, float(rotation))
        self._last_angle = rotation.current

        dt = 0.0
        if self._last_now is not None and math.isfinite(now):
            dt = now - self._last_now
        if math.isfinite(now):
            self._last_now = now

        rebuilt = False
        if self._dirty and self._params is not None:
            self._rebuild(now)
            rebuilt = True

        crossed: list[CandidatePoint] = []
        if not rebuilt and dt > 0.0:
            crossed = [self._by_key[k] for k in self._detector.detect(rotation)]

        events = self._markers.apply(crossed, now, dt, self._mapper)
        if self._quantizer is not None:
            out = self._quantizer.release(now)
            for ev in events:
                snapped = self._quantizer.submit(ev, now)
                if snapped is not None:
                    out.append(snapped)
            events = out

        if events and logger.isEnabledFor(logging.DEBUG):
            for ev in events:
                logger.debug(
                    "trigger %s key=%s f=%.2f pan=%.2f t=%.4f", ev.source_kind.value, ev.key, ev.frequency, ev.pan, ev.time
                )

        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        self._check_budget(now, elapsed_ms)
        return FrameResult(
            events=tuple(events),
            markers=tuple(self._markers.views()),
            rebuilt=rebuilt,
            elapsed_ms=elapsed_ms,
        )

    def _check_budget(self, now: float, elapsed_ms: float) -> None:
        budget = settings.get().FRAME_BUDGET_MS
        if budget <= 0.0 or elapsed_ms <= budget:
            return
        if math.isfinite(now) and now - self._last_budget_warning < BUDGET_WARN_INTERVAL:
            return
        self._last_budget_warning = now
        logger.warning("frame took %.2f ms (budget %.2f ms, %d candidates)", elapsed_ms, budget, len(self._candidates))

    def reset(self) -> None:
        """時刻/角度の履歴とマーカーを破棄する（候補点は次の tick で再構築）。"""
        self._markers.clear()
        self._last_now = None
        self._last_angle = 0.0
        if self._quantizer is not None:
            self._quantizer.clear()
        self._dirty = self._params is not None


__all__ = ["LayerParams", "FrameResult", "build_candidates", "TriggerEngine"]
