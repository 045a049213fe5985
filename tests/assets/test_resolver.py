import pytest

from wren.assets.resolver import resolve_url


def test_asset_scheme_joins_root_with_single_slash():
    assert resolve_url("asset://x.glb", "https://a.b/") == "https://a.b/x.glb"
    assert resolve_url("asset://x.glb", "https://a.b") == "https://a.b/x.glb"


def test_asset_scheme_strips_backslash_root():
    assert resolve_url("asset://x.glb", "C:\\assets\\") == "C:\\assets/x.glb"


@pytest.mark.parametrize("root", [None, ""])
def test_asset_scheme_without_root(root):
    assert resolve_url("asset://x.glb", root) is None


@pytest.mark.parametrize("root", [None, "", "https://a.b/"])
def test_absolute_address_passes_through(root):
    assert resolve_url("https://c.d/x.glb", root) == "https://c.d/x.glb"
    assert resolve_url("http://c.d/x.glb", root) == "http://c.d/x.glb"


def test_relative_locator_is_not_resolvable():
    assert resolve_url("models/x.glb", "https://a.b/") is None
    assert resolve_url("ftp://c.d/x.glb", "https://a.b/") is None


@pytest.mark.parametrize("locator", [None, 42, b"asset://x.glb", ["asset://x.glb"]])
def test_non_string_locator(locator):
    assert resolve_url(locator, "https://a.b/") is None


def test_locator_is_case_sensitive():
    # Scheme matching is exact, no normalization
    assert resolve_url("ASSET://x.glb", "https://a.b/") is None
