"""Tests de la normalisation du positionnement."""

import pytest

from backend.domain.diagram import ContentModelPosition, layouts_equal
from backend.domain.position import normalize_layout


def _layout(points: dict) -> ContentModelPosition:
    return ContentModelPosition.model_validate({"contentTypes": points})


def test_normalize_shifts_bounding_box_to_origin():
    out = normalize_layout(_layout({"a": {"x": 120, "y": 40}, "b": {"x": 300.5, "y": 10}}))
    assert out.canonical() == {
        "contentTypes": {"a": {"x": 0, "y": 30}, "b": {"x": 180.5, "y": 0}}
    }


def test_normalize_handles_negative_coordinates():
    out = normalize_layout(_layout({"a": {"x": -50, "y": -20}, "b": {"x": 25, "y": 5}}))
    assert min(p.x for p in out.content_types.values()) == 0
    assert min(p.y for p in out.content_types.values()) == 0
    assert out.canonical()["contentTypes"]["b"] == {"x": 75, "y": 25}


def test_normalize_is_idempotent():
    once = normalize_layout(_layout({"a": {"x": 7, "y": 9}, "b": {"x": 3, "y": 100}}))
    assert layouts_equal(normalize_layout(once), once)


@pytest.mark.parametrize("dx,dy", [(10, 0), (-35.5, 12), (1000, -1000), (0.2, 0.1), (-0.7, 0.3)])
def test_normalize_is_translation_invariant(dx, dy):
    base = {"a": {"x": 0.1, "y": 9}, "b": {"x": 0.3, "y": 100.7}}
    moved = {k: {"x": v["x"] + dx, "y": v["y"] + dy} for k, v in base.items()}
    assert layouts_equal(normalize_layout(_layout(base)), normalize_layout(_layout(moved)))


def test_normalize_keeps_keys_and_does_not_mutate_input():
    src = _layout({"a": {"x": 5, "y": 5}})
    out = normalize_layout(src)
    assert set(out.content_types) == {"a"}
    assert src.content_types["a"].x == 5
    assert out is not src


def test_normalize_empty_layout_returns_copy():
    src = _layout({})
    out = normalize_layout(src)
    assert out.content_types == {}
    assert out is not src


def test_layouts_equal_still_detects_real_moves():
    a = _layout({"a": {"x": 0, "y": 0}, "b": {"x": 0.2, "y": 0}})
    b = _layout({"a": {"x": 0, "y": 0}, "b": {"x": 0.2001, "y": 0}})
    assert not layouts_equal(a, b)
