"""Tests du moteur de décision de version et du plan de régénération."""

import pytest

from backend.domain.diagram import ContentModelGraph, ContentModelPosition, graphs_equal
from backend.domain.errors import ValidationError
from backend.domain.position import normalize_layout
from backend.domain.versioning import (
    ChangeKind,
    LatestVersion,
    ProposedUpdate,
    RegenerationPlan,
    classify_update,
    initial_plan,
    plan_regeneration,
)
from backend.domain.visibility import Visibility
from tests.fakes import blog_graph, blog_layout, content_type


def _graph(raw=None) -> ContentModelGraph:
    return ContentModelGraph.model_validate(raw if raw is not None else blog_graph())


def _layout(raw=None) -> ContentModelPosition:
    return ContentModelPosition.model_validate(raw if raw is not None else blog_layout())


@pytest.fixture
def latest():
    return LatestVersion(version=3, model=_graph(), position=normalize_layout(_layout()))


def test_scalar_only_update_creates_no_version(latest):
    decision = classify_update(
        "Blog", latest, ProposedUpdate(description="  New text ", visibility=Visibility.PRIVATE)
    )
    assert decision.kind is ChangeKind.NONE
    assert decision.description == "New text"
    assert decision.visibility is Visibility.PRIVATE
    assert decision.next_version is None


def test_same_graph_and_translated_layout_is_not_a_change(latest):
    proposed = ProposedUpdate(model=_graph(), position=_layout(blog_layout(offset_x=250, offset_y=-30)))
    decision = classify_update("Blog", latest, proposed)
    assert decision.kind is ChangeKind.NONE
    assert not decision.model_changed
    assert not decision.layout_changed


def test_fractional_translation_is_not_a_change():
    stored = {"contentTypes": {"post": {"x": 0.1, "y": 0}, "author": {"x": 0.3, "y": 0}}}
    moved = {"contentTypes": {"post": {"x": 0.3, "y": 0}, "author": {"x": 0.5, "y": 0}}}
    latest = LatestVersion(version=1, model=_graph(), position=normalize_layout(_layout(stored)))
    decision = classify_update("Blog", latest, ProposedUpdate(position=_layout(moved)))
    assert decision.kind is ChangeKind.NONE
    assert not decision.layout_changed


def test_layout_only_change_patches_latest(latest):
    moved = blog_layout()
    moved["contentTypes"]["author"]["x"] = 900
    decision = classify_update("Blog", latest, ProposedUpdate(position=_layout(moved)))
    assert decision.kind is ChangeKind.PATCH_LAYOUT
    assert decision.next_version is None
    assert decision.position.canonical()["contentTypes"]["author"] == {"x": 800, "y": 30}


def test_graph_change_creates_next_version_with_inherited_layout(latest):
    graph = blog_graph() + [content_type("tag", "Tag")]
    decision = classify_update("Blog", latest, ProposedUpdate(model=_graph(graph)))
    assert decision.kind is ChangeKind.NEW_VERSION
    assert decision.next_version == 4
    assert decision.version_name == "Blog"
    assert decision.position is latest.position


def test_graph_and_layout_change_uses_new_normalized_layout(latest):
    graph = blog_graph() + [content_type("tag", "Tag")]
    layout = {"contentTypes": {"post": {"x": 10, "y": 10}, "tag": {"x": 60, "y": 40}}}
    decision = classify_update(
        "Blog", latest, ProposedUpdate(title="Blog v2", model=_graph(graph), position=_layout(layout))
    )
    assert decision.kind is ChangeKind.NEW_VERSION
    assert decision.version_name == "Blog v2"
    assert decision.position.canonical() == {
        "contentTypes": {"post": {"x": 0, "y": 0}, "tag": {"x": 50, "y": 30}}
    }


def test_key_order_does_not_count_as_graph_change(latest):
    reordered = [dict(reversed(list(ct.items()))) for ct in blog_graph()]
    decision = classify_update("Blog", latest, ProposedUpdate(model=_graph(reordered)))
    assert decision.kind is ChangeKind.NONE


def test_blank_title_on_update_is_rejected(latest):
    with pytest.raises(ValidationError) as err:
        classify_update("Blog", latest, ProposedUpdate(title="   "))
    assert err.value.message == "title_required"


def test_title_change_detection(latest):
    assert classify_update("Blog", latest, ProposedUpdate(title="Blog ")).title_changed is False
    assert classify_update("Blog", latest, ProposedUpdate(title="News")).title_changed is True


def _decision(latest, **kwargs):
    return classify_update("Blog", latest, ProposedUpdate(**kwargs))


def test_plan_for_graph_change_overwrites_meta_only(latest):
    graph = blog_graph() + [content_type("tag", "Tag")]
    plan = plan_regeneration(_decision(latest, model=_graph(graph)), "meta/1", "diag/1", "nc/1")
    assert plan == RegenerationPlan(meta_image_public_id="meta/1")
    assert plan.generate_meta_image and plan.generate_diagram_images


def test_plan_for_layout_change_overwrites_all(latest):
    moved = blog_layout()
    moved["contentTypes"]["post"]["y"] = 500
    plan = plan_regeneration(_decision(latest, position=_layout(moved)), "meta/1", "diag/1", "nc/1")
    assert plan == RegenerationPlan(
        meta_image_public_id="meta/1",
        diagram_image_public_id="diag/1",
        diagram_no_connections_image_public_id="nc/1",
    )


def test_plan_for_title_change_skips_diagrams(latest):
    plan = plan_regeneration(_decision(latest, title="News"), "meta/1", "diag/1", "nc/1")
    assert plan.generate_meta_image is True
    assert plan.generate_diagram_images is False
    assert plan.meta_image_public_id == "meta/1"


def test_no_plan_when_nothing_rendered_changes(latest):
    assert plan_regeneration(_decision(latest, description="x"), "meta/1", None, None) is None


def test_initial_plan_generates_everything_fresh():
    plan = initial_plan()
    assert plan.generate_meta_image and plan.generate_diagram_images
    assert plan.meta_image_public_id is None
    assert plan.diagram_image_public_id is None


def test_plan_survives_serialization_for_workers():
    plan = RegenerationPlan(generate_diagram_images=False, meta_image_public_id="m")
    assert RegenerationPlan.from_dict({**plan.as_dict(), "unexpected": 1}) == plan


def test_graphs_equal_ignores_key_order_and_absent_nulls():
    graph = blog_graph()
    reordered = [dict(reversed(list(ct.items()))) for ct in graph]
    for ct in reordered:
        ct.pop("description")
    assert graphs_equal(_graph(graph), _graph(reordered))


def test_graphs_equal_respects_list_order():
    assert not graphs_equal(_graph(), _graph(list(reversed(blog_graph()))))
