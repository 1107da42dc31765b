"""Tests for bearer extraction and the auth dependencies."""

from types import SimpleNamespace

import pytest

from golive.auth.dependencies import (
    extract_bearer_token,
    optional_viewer,
    require_admin,
    require_viewer,
)
from golive.auth.tokens import mint_admin_token, mint_viewer_token
from golive.exceptions import UnauthorizedError


def _request():
    return SimpleNamespace(state=SimpleNamespace())


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def") == "abc.def"
    assert extract_bearer_token("bearer abc") == "abc"


@pytest.mark.parametrize("header", [None, "", "abc", "Basic abc", "Bearer a b"])
def test_extract_bearer_token_rejects_malformed(header):
    with pytest.raises(UnauthorizedError):
        extract_bearer_token(header)


async def test_require_viewer_sets_principal():
    request = _request()
    token = mint_viewer_token("evt-1", "c1", False)

    claims = await require_viewer(request, f"Bearer {token}")

    assert claims.client_viewer_id == "c1"
    assert request.state.principal == "viewer:c1"


async def test_optional_viewer_without_header():
    assert await optional_viewer(_request(), None) is None


async def test_optional_viewer_with_bad_header_still_fails():
    with pytest.raises(UnauthorizedError):
        await optional_viewer(_request(), "Bearer junk")


async def test_require_admin_sets_principal():
    request = _request()

    principal = await require_admin(request, f"Bearer {mint_admin_token('admin-7')}")

    assert principal.admin_id == "admin-7"
    assert request.state.principal == "admin:admin-7"
