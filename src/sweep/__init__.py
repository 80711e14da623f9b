"""
sweep パッケージ: 回転スイープの交差判定・マーカー管理・トリガ写像とエンジン本体。
"""

from .clock import FrameClock, RotationClock, SweepDriver, Tickable
from .config import EngineConfig, InvalidEngineConfig, load_engine_config
from .crossing import CrossingDetector, RotationState, normalize_angle
from .engine import FrameResult, LayerParams, TriggerEngine
from .mapping import TriggerEvent
from .markers import MarkerLifecycleManager, MarkerState, MarkerView
from .quantize import TriggerQuantizer

__all__ = [
    "FrameClock",
    "RotationClock",
    "SweepDriver",
    "Tickable",
    "EngineConfig",
    "InvalidEngineConfig",
    "load_engine_config",
    "CrossingDetector",
    "RotationState",
    "normalize_angle",
    "FrameResult",
    "LayerParams",
    "TriggerEngine",
    "TriggerEvent",
    "MarkerLifecycleManager",
    "MarkerState",
    "MarkerView",
    "TriggerQuantizer",
]
