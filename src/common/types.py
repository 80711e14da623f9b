"""
どこで: `common` の型定義。
何を: Vec2 などの軽量エイリアスと、頂点リング配列の型名。
なぜ: 依存の少ない場所に配置して循環と分散定義を避けるため。
"""

import numpy as np
from numpy.typing import NDArray

Vec2 = tuple[float, float]

# (m, 2) float64 の頂点列。行の並びがそのまま描画順（末尾→先頭で暗黙に閉じる）。
Ring = NDArray[np.float64]


__all__ = ["Vec2", "Ring"]
