"""Tests for rewriting settings."""

import pytest

from respterm import Settings, settings, FUNCTIONAL_POLICIES


class TestSettings:
    """Tests for the Settings object."""

    def test_defaults(self):
        """Fresh settings hold the defaults."""
        s = Settings()
        assert s.get('functional_policy') == 'whole'
        assert s.get('zero_tolerance') == 1e-12
        assert s.get('verbose') is False
        assert 'passthrough' in FUNCTIONAL_POLICIES

    def test_overrides(self):
        """Constructor overrides are validated like set()."""
        s = Settings(functional_policy='whole', zero_tolerance=0)
        assert s.get('functional_policy') == 'whole'
        assert s.get('zero_tolerance') == 0.0
        with pytest.raises(ValueError):
            Settings(functional_policy='sometimes')

    def test_invalid_values(self):
        """Unknown keys and bad values are rejected."""
        s = Settings()
        with pytest.raises(ValueError):
            s.get('colour')
        with pytest.raises(ValueError):
            s.set('colour', 'red')
        with pytest.raises(ValueError):
            s.set('zero_tolerance', -1.0)
        with pytest.raises(ValueError):
            s.set('zero_tolerance', True)

    def test_has_and_reset(self):
        """has() checks keys, reset() restores defaults."""
        s = Settings()
        assert s.has('verbose')
        assert not s.has('colour')
        s.set('verbose', 1)
        assert s.get('verbose') is True
        s.reset()
        assert s.get('verbose') is False

    def test_resolve(self):
        """Explicit values win over stored ones."""
        s = Settings()
        assert s.resolve('functional_policy') == 'whole'
        assert s.resolve('functional_policy', 'passthrough') == 'passthrough'

    def test_module_settings(self):
        """The shared instance is a Settings."""
        assert isinstance(settings, Settings)
        assert 'functional_policy' in repr(settings)
