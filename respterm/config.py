"""
respterm: rewriting settings

A single namespaced settings object, read by the entry points whenever
the caller does not override a value explicitly.
"""

__all__ = ['Settings', 'settings', 'FUNCTIONAL_POLICIES']

# How Remove and Keep treat exchange-correlation energies and potentials:
# - whole: removed or kept as a whole by the predicate, like a plain symbol
# - passthrough: never removed, so always kept, and never decomposed
FUNCTIONAL_POLICIES = ('whole', 'passthrough')

_DEFAULTS = {
    'functional_policy': 'whole',
    'zero_tolerance': 1e-12,
    'verbose': False,
}


class Settings:
    """Rewriting settings with validation.

    Keys:
    - functional_policy: One of FUNCTIONAL_POLICIES
    - zero_tolerance: Absolute tolerance under which an inexact coefficient
      counts as zero in remove_zeros()
    - verbose: Print a trace of every rewrite

    Example:
        >>> settings.set('functional_policy', 'passthrough')
        >>> settings.get('functional_policy')
        'passthrough'
        >>> settings.reset()
    """

    def __init__(self, **overrides):
        """Initialize settings from the defaults, then apply overrides."""
        self._values = dict(_DEFAULTS)
        for name, value in overrides.items():
            self.set(name, value)

    def get(self, name):
        """Get a setting.

        Raises:
            ValueError: If the setting does not exist
        """
        if name not in self._values:
            raise ValueError(f"Unknown setting {name!r}")
        return self._values[name]

    def set(self, name, value):
        """Set a setting after validating the value.

        Raises:
            ValueError: If the setting does not exist or the value is invalid
        """
        if name not in _DEFAULTS:
            raise ValueError(f"Unknown setting {name!r}")
        if name == 'functional_policy' and value not in FUNCTIONAL_POLICIES:
            raise ValueError(
                f"functional_policy must be one of {FUNCTIONAL_POLICIES}, got {value!r}"
            )
        if name == 'zero_tolerance':
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"zero_tolerance must be a non-negative number, got {value!r}")
            value = float(value)
        if name == 'verbose':
            value = bool(value)
        self._values[name] = value

    def has(self, name):
        """Check if setting exists."""
        return name in self._values

    def resolve(self, name, value=None):
        """Explicit value if given, otherwise the stored setting."""
        return self.get(name) if value is None else value

    def reset(self):
        """Restore every setting to its default."""
        self._values = dict(_DEFAULTS)

    def __repr__(self):
        items = ', '.join(f"{k}={v!r}" for k, v in self._values.items())
        return f"Settings({items})"


settings = Settings()
