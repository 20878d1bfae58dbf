"""Tests for version ordering."""

import pytest

from depstat.versions import compare_versions, version_greater


class TestCompareVersions:
    @pytest.mark.parametrize("a,b,expected", [
        ("v1.10.0", "v1.9.0", 1),
        ("v1.2.0", "v1.2.0", 0),
        ("v1.2", "v1.2.0", 0),
        ("v0.3.0", "v1.0.0", -1),
        ("1.4", "v1.3", 1),
    ])
    def test_numeric(self, a, b, expected):
        assert compare_versions(a, b) == expected

    @pytest.mark.parametrize("a,b,expected", [
        ("v1.10.0-rc.1", "v1.9.0", 1),
        ("v10.0.0+incompatible", "v2.0.0+incompatible", 1),
        ("v1.0.0", "v1.0.0-rc.1", 1),
        ("v1.0.0-rc.2", "v1.0.0-rc.10", -1),
        ("v1.0.0-alpha", "v1.0.0-alpha.1", -1),
        ("v1.0.0-beta", "v1.0.0-alpha.beta", 1),
        ("v1.0.0-rc1", "v1.0.0-beta", 1),
        ("v2.0.0+incompatible", "v2.0.0", 1),
        ("v0.0.0-20200101000000-abcdef012345", "v0.0.0-20191231000000-ffffffffffff", 1),
        ("v1.2.4-0.20200101000000-abcdef012345", "v1.2.3", 1),
    ])
    def test_prerelease_and_build(self, a, b, expected):
        assert compare_versions(a, b) == expected
        assert compare_versions(b, a) == -expected

    def test_unparseable_falls_back_to_lexical(self):
        assert compare_versions("", "v1") == -1
        assert compare_versions("latest", "main") == -1

    def test_version_greater(self):
        assert version_greater("v2.0.0", "v1.99.99")
        assert not version_greater("v1.0.0", "v1.0.0")
        assert not version_greater("", "v0.0.1")
