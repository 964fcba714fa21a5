"""Tests de la politique de visibilité."""

import pytest

from backend.domain.errors import ValidationError
from backend.domain.visibility import (
    Visibility,
    bypass_secret_matches,
    can_read,
    resolve_listing_filter,
)


@pytest.mark.parametrize("visibility", [Visibility.PUBLIC, Visibility.UNLISTED])
def test_public_and_unlisted_are_readable_by_anyone(visibility):
    assert can_read(visibility, "owner", None)
    assert can_read(visibility, "owner", "someone-else")


def test_private_is_readable_by_owner_only():
    assert can_read(Visibility.PRIVATE, "owner", "owner")
    assert not can_read(Visibility.PRIVATE, "owner", "someone-else")
    assert not can_read(Visibility.PRIVATE, "owner", None)


def test_private_is_readable_with_matching_secret():
    assert can_read(Visibility.PRIVATE, "owner", None, "s3cret", "s3cret")
    assert not can_read(Visibility.PRIVATE, "owner", None, "guess", "s3cret")


def test_unconfigured_secret_never_matches():
    assert not bypass_secret_matches("", "")
    assert not bypass_secret_matches("anything", None)
    assert not can_read(Visibility.PRIVATE, "owner", None, "", None)


def test_public_listing_keeps_optional_user_filter():
    listing = resolve_listing_filter(Visibility.PUBLIC, None, "user-1")
    assert listing.visibility is Visibility.PUBLIC
    assert listing.owner_id == "user-1"
    assert resolve_listing_filter(Visibility.PUBLIC, None, "").owner_id is None


def test_non_public_listing_is_restricted_to_caller():
    listing = resolve_listing_filter(Visibility.PRIVATE, "me", "someone-else")
    assert listing.owner_id == "me"


def test_non_public_listing_requires_authentication():
    with pytest.raises(ValidationError):
        resolve_listing_filter(Visibility.UNLISTED, None)
