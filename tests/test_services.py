"""Tests du service des modèles de contenu (création, mises à jour, lecture, liste)."""

import json

import pytest

from backend.domain.errors import NotFoundError, ValidationError
from backend.domain.services import SLUG_ALPHABET, ContentModelService, generate_slug
from backend.domain.versioning import RegenerationPlan
from backend.domain.visibility import Visibility
from backend.infra.assets.base import UploadResult
from backend.infra.repo.content_model_repo import ContentModelRepo
from backend.infra.repo.db import session_scope
from tests.fakes import blog_graph, blog_layout, content_type


@pytest.fixture
def run(engine, recorder):
    """Exécute une opération de service dans sa propre transaction."""

    def _run(fn, secret=None):
        with session_scope(engine) as session:
            return fn(ContentModelService(session, recorder, bypass_secret=secret))

    return _run


@pytest.fixture
def created(run, owner):
    return run(
        lambda s: s.create(owner.id, "Blog", "A blog", blog_graph(), blog_layout(offset_x=30))
    )


def _upload(public_id: str) -> UploadResult:
    return UploadResult(public_id=public_id, version=1, signature="sig", width=10, height=10)


def _attach_images(engine, content_model_id: str) -> None:
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        repo.set_meta_image(content_model_id, _upload("meta/1"))
        repo.set_latest_version_images(content_model_id, _upload("diag/1"), _upload("nc/1"))


def test_generate_slug_shape():
    slug = generate_slug()
    assert len(slug) == 11
    assert set(slug) <= set(SLUG_ALPHABET)


def test_create_stores_version_one_with_normalized_layout(created, recorder):
    assert created.latest.version == 1
    assert created.latest.name == "Blog"
    assert created.visibility is Visibility.PUBLIC
    assert created.cms == "contentful"
    assert created.latest.position["contentTypes"]["post"] == {"x": 0, "y": 0}
    assert recorder.calls == [(created.slug, RegenerationPlan())]


def test_create_accepts_json_strings(run, owner):
    cm = run(
        lambda s: s.create(
            owner.id, "T", "D", json.dumps(blog_graph()), json.dumps(blog_layout()), "UNLISTED"
        )
    )
    assert cm.visibility is Visibility.UNLISTED
    assert [ct["sys"]["id"] for ct in cm.latest.model] == ["post", "author"]


@pytest.mark.parametrize(
    "title,description,model,position,message",
    [
        ("  ", "d", blog_graph(), blog_layout(), "title_required"),
        ("t", "", blog_graph(), blog_layout(), "description_required"),
        ("t", "d", "{bad", blog_layout(), "invalid_model"),
        ("t", "d", blog_graph(), {"contentTypes": {"a": {"x": "1", "y": 0}}}, "invalid_position"),
    ],
)
def test_create_rejects_invalid_payloads(run, owner, recorder, title, description, model, position, message):
    with pytest.raises(ValidationError) as err:
        run(lambda s: s.create(owner.id, title, description, model, position))
    assert err.value.message.startswith(message)
    assert recorder.calls == []


def test_layout_only_update_patches_in_place(run, engine, created, owner, recorder):
    _attach_images(engine, created.id)
    moved = blog_layout()
    moved["contentTypes"]["author"]["y"] = 400
    updated = run(lambda s: s.update(owner.id, created.id, position=moved))
    assert updated.latest.version == 1
    assert updated.latest.position["contentTypes"]["author"] == {"x": 300, "y": 350}
    assert recorder.plans[-1] == RegenerationPlan(
        meta_image_public_id="meta/1",
        diagram_image_public_id="diag/1",
        diagram_no_connections_image_public_id="nc/1",
    )


def test_graph_update_creates_new_version(run, engine, created, owner, recorder):
    _attach_images(engine, created.id)
    graph = blog_graph() + [content_type("tag", "Tag")]
    updated = run(lambda s: s.update(owner.id, created.id, title="Blog 2", model=graph))
    assert updated.latest.version == 2
    assert updated.latest.name == "Blog 2"
    assert updated.title == "Blog 2"
    assert updated.latest.position == created.latest.position
    assert updated.latest.image is None
    assert recorder.plans[-1] == RegenerationPlan(meta_image_public_id="meta/1")


def test_identical_payload_neither_versions_nor_regenerates(run, created, owner, recorder):
    before = len(recorder.calls)
    updated = run(
        lambda s: s.update(
            owner.id, created.id, model=blog_graph(), position=blog_layout(offset_x=-75, offset_y=12)
        )
    )
    assert updated.latest.version == 1
    assert len(recorder.calls) == before


def test_title_only_update_regenerates_meta_only(run, created, owner, recorder):
    run(lambda s: s.update(owner.id, created.id, title="Renamed"))
    plan = recorder.plans[-1]
    assert plan.generate_meta_image is True
    assert plan.generate_diagram_images is False


def test_rolled_back_update_dispatches_nothing(engine, recorder, created, owner):
    before = len(recorder.calls)
    with pytest.raises(RuntimeError), session_scope(engine) as session:
        ContentModelService(session, recorder).update(owner.id, created.id, title="Doomed")
        raise RuntimeError("boom")
    assert len(recorder.calls) == before
    with session_scope(engine) as session:
        assert ContentModelRepo(session).get_by_id(created.id).title == "Blog"


def test_update_of_foreign_model_is_not_found(run, created, stranger):
    with pytest.raises(NotFoundError):
        run(lambda s: s.update(stranger.id, created.id, title="Mine now"))
    with pytest.raises(NotFoundError):
        run(lambda s: s.update(stranger.id, "missing-id", title="x"))


def test_delete_removes_model_and_versions(run, engine, created, owner):
    run(lambda s: s.update(owner.id, created.id, model=blog_graph() + [content_type("tag", "Tag")]))
    deleted = run(lambda s: s.delete(owner.id, created.id))
    assert deleted.slug == created.slug
    with pytest.raises(NotFoundError):
        run(lambda s: s.get_by_slug(created.slug))


def test_private_model_read_rules(run, created, owner, stranger):
    run(lambda s: s.update(owner.id, created.id, visibility="PRIVATE"))
    assert run(lambda s: s.get_by_slug(created.slug, viewer_id=owner.id)).id == created.id
    with pytest.raises(NotFoundError):
        run(lambda s: s.get_by_slug(created.slug, viewer_id=stranger.id))
    with pytest.raises(NotFoundError):
        run(lambda s: s.get_by_slug(created.slug, presented_secret="guess"), secret="s3cret")
    found = run(lambda s: s.get_by_slug(created.slug, presented_secret="s3cret"), secret="s3cret")
    assert found.id == created.id


def test_list_defaults_to_public_and_searches_title_or_description(run, owner):
    run(lambda s: s.create(owner.id, "Recipes", "Food things", blog_graph(), blog_layout()))
    run(lambda s: s.create(owner.id, "Shop", "Catalog with recipes", blog_graph(), blog_layout()))
    run(lambda s: s.create(owner.id, "Hidden", "recipes", blog_graph(), blog_layout(), "UNLISTED"))
    page = run(lambda s: s.list(search="RECIPES"))
    assert {cm.title for cm in page.items} == {"Recipes", "Shop"}
    assert page.total == 2


def test_list_clamps_count_and_page(run, owner):
    for i in range(3):
        run(lambda s, i=i: s.create(owner.id, f"M{i}", "d", blog_graph(), blog_layout()))
    page = run(lambda s: s.list(count=0, page=-4))
    assert len(page.items) == 1
    assert page.has_next is True
    assert page.has_prev is False


def test_list_non_public_requires_caller(run, owner):
    run(lambda s: s.create(owner.id, "Mine", "d", blog_graph(), blog_layout(), "PRIVATE"))
    with pytest.raises(ValidationError):
        run(lambda s: s.list(visibility="PRIVATE"))
    page = run(lambda s: s.list(visibility="PRIVATE", viewer_id=owner.id))
    assert [cm.title for cm in page.items] == ["Mine"]


def test_schedule_full_regeneration_overwrites_existing_ids(run, engine, created, recorder):
    _attach_images(engine, created.id)
    with session_scope(engine) as session:
        service = ContentModelService(session, recorder)
        plan = service.schedule_full_regeneration(service.models.get_by_id(created.id))
    assert plan.meta_image_public_id == "meta/1"
    assert plan.diagram_image_public_id == "diag/1"
    assert plan.diagram_no_connections_image_public_id == "nc/1"
    assert recorder.calls[-1] == (created.slug, plan)
