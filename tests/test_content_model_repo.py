"""Tests du dépôt SQL des modèles de contenu."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from backend.domain.errors import DependencyError
from backend.domain.visibility import ListingFilter, Visibility
from backend.infra.assets.base import UploadResult
from backend.infra.repo.content_model_repo import ContentModelRepo
from backend.infra.repo.db import session_scope
from backend.infra.repo.models import ContentModelORM, ContentModelVersionORM, ImageAssetORM
from backend.infra.repo.user_repo import UserRepo


def _create(repo: ContentModelRepo, owner_id: str, slug: str, title: str = "T", **kwargs):
    return repo.create(
        owner_id=owner_id,
        slug=slug,
        title=title,
        description=kwargs.get("description", "d"),
        visibility=kwargs.get("visibility", Visibility.PUBLIC),
        model=[],
        position={"contentTypes": {}},
    )


def _upload(public_id: str, version: int = 1) -> UploadResult:
    return UploadResult(public_id=public_id, version=version, signature="s", width=4, height=3)


def test_create_and_lookup(engine, owner):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        cm = _create(repo, owner.id, "abcdefghijk")
        assert repo.get_by_id(cm.id).slug == "abcdefghijk"
        assert repo.get_by_slug("abcdefghijk").owner.email == owner.email
        assert repo.get_by_slug("unknown") is None


def test_duplicate_slug_is_a_dependency_error(engine, owner):
    with pytest.raises(DependencyError), session_scope(engine) as session:
        repo = ContentModelRepo(session)
        _create(repo, owner.id, "same-slug01")
        _create(repo, owner.id, "same-slug01")


def test_versions_are_unique_per_model(engine, owner):
    with pytest.raises(DependencyError), session_scope(engine) as session:
        repo = ContentModelRepo(session)
        cm = _create(repo, owner.id, "versioned01")
        repo.add_version(cm.id, version=1, name="dup", model=[], position={}, author_id=owner.id)


def test_latest_version_is_highest_number(engine, owner):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        cm = _create(repo, owner.id, "latest00001")
        repo.add_version(cm.id, version=2, name="v2", model=[], position={}, author_id=owner.id)
        assert repo.get_by_id(cm.id).latest.version == 2
        assert repo.get_by_id(cm.id).latest.name == "v2"


def test_images_update_existing_rows(engine, owner):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        cm = _create(repo, owner.id, "images00001")
        repo.set_meta_image(cm.id, _upload("meta"))
        repo.set_meta_image(cm.id, _upload("meta", version=2))
        assert repo.set_latest_version_images(cm.id, _upload("d"), _upload("n")) == 1
        repo.set_latest_version_images(cm.id, _upload("d", 2), _upload("n", 2))
        fresh = repo.get_by_id(cm.id)
        assert fresh.og_meta_image.version == 2
        assert fresh.latest.image.public_id == "d"
        assert fresh.latest.image_no_connections.version == 2
        assert session.execute(select(func.count()).select_from(ImageAssetORM)).scalar_one() == 3


def test_listing_orders_newest_first_and_paginates(engine, owner):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        for i in range(3):
            _create(repo, owner.id, f"order000{i:03d}", title=f"M{i}")
        base = datetime(2024, 1, 1, tzinfo=UTC)
        for row in session.execute(select(ContentModelORM)).scalars():
            row.created_at = base + timedelta(days=int(row.title[1:]))
        session.flush()

        first = repo.list(ListingFilter(Visibility.PUBLIC, None), count=2, page=1)
        second = repo.list(ListingFilter(Visibility.PUBLIC, None), count=2, page=2)
    assert [cm.title for cm in first.items] == ["M2", "M1"]
    assert (first.has_prev, first.has_next, first.total) == (False, True, 3)
    assert [cm.title for cm in second.items] == ["M0"]
    assert (second.has_prev, second.has_next) == (True, False)


def test_listing_filters_owner_and_escapes_search(engine, owner, stranger):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        _create(repo, owner.id, "owner000001", title="100% cotton")
        _create(repo, owner.id, "owner000002", title="1000 cottons")
        _create(repo, stranger.id, "strang00001", title="100% wool")
        mine = repo.list(ListingFilter(Visibility.PUBLIC, owner.id))
        percent = repo.list(ListingFilter(Visibility.PUBLIC, None), search="100%")
    assert mine.total == 2
    assert {cm.title for cm in percent.items} == {"100% cotton", "100% wool"}


def test_delete_removes_versions_but_keeps_images(engine, owner):
    with session_scope(engine) as session:
        repo = ContentModelRepo(session)
        cm = _create(repo, owner.id, "delete00001")
        repo.add_version(cm.id, version=2, name="v2", model=[], position={}, author_id=owner.id)
        repo.set_meta_image(cm.id, _upload("meta"))
        repo.delete(cm.id)
        assert repo.get_by_id(cm.id) is None
        assert session.execute(select(func.count()).select_from(ContentModelVersionORM)).scalar_one() == 0
        assert session.execute(select(func.count()).select_from(ImageAssetORM)).scalar_one() == 1


def test_user_upsert_fills_missing_profile_fields(engine):
    with session_scope(engine) as session:
        users = UserRepo(session)
        first = users.upsert("auth0|zed", "zed@example.com")
        again = users.upsert("auth0|zed", "zed@example.com", name="Zed", picture="p.png")
        kept = users.upsert("auth0|zed", "zed@example.com", name="Other")
    assert first.id == again.id == kept.id
    assert kept.name == "Zed"
    assert kept.picture == "p.png"
