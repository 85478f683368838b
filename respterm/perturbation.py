"""
Perturbations: the differentiation variables of response theory.

A perturbation is a named symbol carrying a frequency and a set of
components (e.g. the x, y, z components of an electric field).
"""

from sympy import Symbol, S, sympify
from sympy.core.numbers import Number as SympyNumber
from sympy.core.sorting import default_sort_key

__all__ = ['Perturbation', 'make_perturbation', 'perturbation_tuple']


class Perturbation(Symbol):
    """Perturbation symbol.

    Two perturbations are equal iff their names, frequencies and component
    sets all match. Components are unordered and unique.

    Attributes:
        name: Name of the perturbation
        frequency: SymPy number
        components: frozenset of non-negative integers
    """

    __slots__ = ('frequency', 'components')

    def __new__(cls, name, frequency=0, components=()):
        frequency = sympify(frequency)
        if not isinstance(frequency, SympyNumber):
            raise TypeError(f"Frequency of {name} must be a number, got {frequency}")
        components = frozenset(int(c) for c in components)
        if any(c < 0 for c in components):
            raise ValueError(f"Components of {name} must be non-negative: {sorted(components)}")
        obj = Symbol.__xnew__(cls, name)
        obj.frequency = frequency
        obj.components = components
        return obj

    def __getnewargs_ex__(self):
        return ((self.name, self.frequency, tuple(sorted(self.components))), {})

    def _hashable_content(self):
        return (Symbol._hashable_content(self)
                + (self.frequency, tuple(sorted(self.components))))

    def sort_key(self, order=None):
        return self.class_key(), (
            2, (self.name, self.frequency.sort_key(), tuple(sorted(self.components)))
        ), S.One.sort_key(), S.One

    def same_variable(self, other):
        """Whether `other` is the same perturbing field (name and frequency)."""
        return (isinstance(other, Perturbation)
                and self.name == other.name
                and self.frequency == other.frequency)


def make_perturbation(name, frequency=0, components=()):
    """Create a perturbation.

    Args:
        name: Name of the perturbation (e.g. 'el' for an electric field)
        frequency: Frequency, any SymPy number (default zero)
        components: Iterable of component indices (default none)

    Returns:
        Perturbation instance

    Example:
        >>> el = make_perturbation('el', Rational(1, 2), {0, 1, 2})
    """
    return Perturbation(name, frequency, components)


def perturbation_tuple(perturbations):
    """Canonical multiset of perturbations.

    Order-independent and multiplicity-sensitive: the perturbations are
    sorted, duplicates are kept.
    """
    perturbations = list(perturbations)
    for p in perturbations:
        if not isinstance(p, Perturbation):
            raise TypeError(f"Expected a Perturbation, got {type(p).__name__} {p}")
    return tuple(sorted(perturbations, key=default_sort_key))
