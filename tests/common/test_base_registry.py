from __future__ import annotations

import pytest

from common.base_registry import BaseRegistry


def test_register_and_get_with_normalization() -> None:
    reg = BaseRegistry("frequency mode")

    @reg.register(None)
    def InverseSquare(distance, reference_radius, f_min, f_max):  # noqa: N802 (テスト用)
        return f_min

    assert reg.is_registered("inverse_square")
    assert reg.get("InverseSquare") is InverseSquare
    assert reg.get("inverse-square") is InverseSquare
    assert "inverse_square" in reg.list_all()


def test_duplicate_registration_raises_and_error_names_kind() -> None:
    reg = BaseRegistry("pan mode")

    @reg.register("sine")
    def sine(*args):
        return 0.0

    with pytest.raises(ValueError, match="pan mode"):
        reg.register("sine")(lambda *args: 1.0)

    # 同一オブジェクトの再登録は許容
    assert reg.register("sine")(sine) is sine

    with pytest.raises(KeyError, match="pan mode"):
        reg.get("stage")


def test_is_registered_accepts_any_spelling() -> None:
    reg = BaseRegistry("parameter mode")

    @reg.register("modulo")
    def modulo(*args):
        return 0.0

    assert reg.is_registered("Modulo")
    assert not reg.is_registered("random")
    assert reg.list_all() == ["modulo"]


def test_invalid_keys() -> None:
    reg = BaseRegistry()
    with pytest.raises(ValueError):
        reg.get("")
    with pytest.raises(TypeError):
        reg.get(3)  # type: ignore[arg-type]

