"""Tests for lazy import system in relaytrace.__init__."""

from __future__ import annotations

import importlib
import sys

import pytest


class TestLazyImports:
    """Test PEP 562 lazy loading in relaytrace.__init__."""

    def test_lazy_import_does_not_eagerly_load(self) -> None:
        """Verify that importing relaytrace does not eagerly load subpackages."""
        saved = {name: mod for name, mod in sys.modules.items() if name.startswith("relaytrace")}
        for name in saved:
            del sys.modules[name]
        try:
            importlib.import_module("relaytrace")

            assert "relaytrace.core" not in sys.modules
            assert "relaytrace.models" not in sys.modules
            assert "relaytrace.services" not in sys.modules
            assert "relaytrace.descriptors" not in sys.modules
        finally:
            for name in [n for n in sys.modules if n.startswith("relaytrace")]:
                del sys.modules[name]
            sys.modules.update(saved)

    def test_lazy_import_resolves_on_access(self) -> None:
        """Verify that lazy attributes resolve correctly."""
        from relaytrace import CanonicalAddress
        from relaytrace.models.address import CanonicalAddress as DirectAddress

        assert CanonicalAddress is DirectAddress

    def test_lazy_import_caches_after_first_access(self) -> None:
        """Verify that resolved attributes are cached in globals."""
        import relaytrace

        _ = relaytrace.lookup

        assert "lookup" in vars(relaytrace)

    def test_lazy_import_invalid_attribute(self) -> None:
        """Verify that invalid attributes raise AttributeError."""
        import relaytrace

        with pytest.raises(AttributeError, match="no_such_thing"):
            _ = getattr(relaytrace, "no_such_thing")  # noqa: B009

    def test_all_exports_are_in_lazy_imports(self) -> None:
        """Verify that __all__ and _LAZY_IMPORTS are in sync."""
        import relaytrace

        assert set(relaytrace.__all__) == set(relaytrace._LAZY_IMPORTS)

    def test_dir_returns_all(self) -> None:
        import relaytrace

        assert dir(relaytrace) == relaytrace.__all__

    def test_version_is_accessible(self) -> None:
        """Verify that __version__ is set from package metadata."""
        import relaytrace

        assert isinstance(relaytrace.__version__, str)
        assert relaytrace.__version__
