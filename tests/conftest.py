"""共通フィクスチャ。

- 乱数シード固定
- 環境変数由来の設定を各テストで既定値に戻す
- 小さな多角形/エンジン試料
"""

from __future__ import annotations

from typing import Iterator

import numpy as np
import pytest

from common import settings
from geometry.copies import layout_copies
from geometry.polygon import PolygonSpec
from sweep.config import EngineConfig
from sweep.engine import LayerParams, TriggerEngine

_ENV_KEYS = ("PSW_USE_NUMBA", "PSW_FRAME_BUDGET_MS", "PSW_DEBUG_TRIGGERS")


@pytest.fixture(scope="session", autouse=True)
def np_seed() -> None:
    """NumPy の乱数を固定。"""
    np.random.seed(12345)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    settings.reload_from_env()
    yield
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    settings.reload_from_env()


@pytest.fixture()
def pentagram() -> PolygonSpec:
    return PolygonSpec(5, 2, 1.0)


@pytest.fixture()
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture()
def square_engine(engine_config: EngineConfig) -> TriggerEngine:
    """正方形 1 個（頂点 0°, 90°, 180°, 270°）を構築済みのエンジン。"""
    engine = TriggerEngine(engine_config)
    engine.set_layer(LayerParams(PolygonSpec(4, 1, 1.0)))
    engine.tick(0.0, 0.0)
    return engine


@pytest.fixture()
def star_layer() -> LayerParams:
    return LayerParams(
        PolygonSpec(5, 2, 1.0),
        copies=layout_copies(3, 0.8, 15.0),
        use_intersections=True,
        use_stars=True,
        use_cuts=True,
    )
