"""
respterm: chemistry node taxonomy on top of SymPy

Tagged symbols used in response theory expressions:
- Electronic states (density matrices, Lagrangian multipliers)
- One- and two-electron operators carrying perturbation dependencies
- Scalar functions: non-electronic functions, two-electron energies,
  composite functions, exchange-correlation energies
- Time-derivative operators and overlaps
- Matrix wrappers missing from SymPy (complex conjugate, matrix derivative)

Every node stores its full identity in ``args``, so structural equality,
hashing, ordering and ``func(*args)`` reconstruction all come from SymPy.
"""

from sympy import Basic, Expr, Symbol, Tuple, sympify
from sympy.core.symbol import Str
from sympy.core.sorting import default_sort_key
from sympy.matrices.expressions.matexpr import MatrixExpr, MatrixSymbol

from .perturbation import Perturbation, perturbation_tuple

__all__ = [
    'NAO',
    'ElectronicState', 'DensityMatrix', 'LagrangeMultiplier',
    'OneElectronOperator', 'TwoElectronOperator', 'TimeDerivativeOverlap',
    'ZeroOperator', 'ExchangeCorrelationPotential',
    'NonElectronicFunction', 'TwoElectronEnergy', 'CompositeFunction',
    'ExchangeCorrelationEnergy',
    'TimeDerivativeOperator', 'ConjugateMatrix', 'MatrixDerivative',
    'is_density_like', 'filter_derivatives',
]

# Number of atomic orbitals, the default dimension of all matrices
NAO = Symbol('N_ao', integer=True, positive=True)

# ============================================================================
# HELPERS
# ============================================================================


def _as_str(name):
    if isinstance(name, Str):
        return name
    if not isinstance(name, str):
        raise TypeError(f"Name must be a string, got {type(name).__name__}")
    return Str(name)


def _derivative_tuple(derivatives):
    return Tuple(*perturbation_tuple(derivatives))


def _dependency_tuple(dependencies):
    """Canonical storage of a dependency map.

    Accepts a dict {Perturbation: components}, an iterable of
    (Perturbation, components) pairs, or an iterable of perturbations (whose
    own components are then the allowed ones). An empty component set means
    all components are allowed.
    """
    if isinstance(dependencies, dict):
        pairs = dependencies.items()
    else:
        pairs = []
        for dep in dependencies:
            if isinstance(dep, Perturbation):
                pairs.append((dep, dep.components))
            else:
                pert, comps = dep
                pairs.append((pert, comps))
    merged = {}
    for pert, comps in pairs:
        if not isinstance(pert, Perturbation):
            raise TypeError(f"Dependency key must be a Perturbation, got {pert}")
        merged.setdefault(pert, set()).update(int(c) for c in comps)
    entries = [Tuple(pert, Tuple(*sorted(comps))) for pert, comps in merged.items()]
    return Tuple(*sorted(entries, key=default_sort_key))


def _check_matrix(expr, role):
    expr = sympify(expr)
    if not isinstance(expr, MatrixExpr):
        raise TypeError(f"{role} must be a matrix expression, got {expr}")
    return expr


def _format_derivatives(name, derivatives):
    if not derivatives:
        return name
    return f"{name}^({', '.join(p.name for p in derivatives)})"


def filter_derivatives(derivatives, dependencies):
    """Keep only the derivative tags a dependency map declares.

    A tag lies inside the map when a key is the same perturbing field (name
    and frequency) and the tag's components are allowed by that key.

    Args:
        derivatives: Sequence of Perturbation
        dependencies: Dict {Perturbation: frozenset of components}

    Returns:
        Tuple of the tags inside the map, order preserved
    """
    kept = []
    for q in derivatives:
        for p, allowed in dependencies.items():
            if p.same_variable(q) and (not allowed or q.components <= allowed):
                kept.append(q)
                break
    return tuple(kept)


class _Tagged:
    """Accessors shared by nodes carrying dependencies and derivatives.

    Subclasses set `_dependency_index` and `_derivative_index` to the
    positions of the two tuples in ``args``.
    """

    _dependency_index = None
    _derivative_index = None

    @property
    def dependencies(self):
        """Dependency map as a dict {Perturbation: frozenset of components}."""
        if self._dependency_index is None:
            return {}
        return {
            entry[0]: frozenset(int(c) for c in entry[1])
            for entry in self.args[self._dependency_index]
        }

    @property
    def derivatives(self):
        """Derivative multiset as a sorted tuple of perturbations."""
        return tuple(self.args[self._derivative_index])

    def differentiate(self, *perturbations):
        """Append derivative tags, returning a new node of the same kind."""
        args = list(self.args)
        args[self._derivative_index] = _derivative_tuple(
            self.derivatives + tuple(perturbations)
        )
        return self.func(*args)


# ============================================================================
# MATRIX SYMBOLS
# ============================================================================


class ElectronicState(_Tagged, MatrixSymbol):
    """Electronic state: a name plus a multiset of derivative tags.

    Args:
        name: Name of the state
        dimension: Matrix dimension (default NAO)
        derivatives: Perturbations the state has been differentiated with
    """

    _derivative_index = 2

    def __new__(cls, name, dimension=NAO, derivatives=()):
        dimension = sympify(dimension)
        cls._check_dim(dimension)
        return Basic.__new__(cls, _as_str(name), dimension,
                             _derivative_tuple(derivatives))

    @property
    def shape(self):
        return self.args[1], self.args[1]

    def _sympystr(self, printer):
        return _format_derivatives(self.name, self.derivatives)


class DensityMatrix(ElectronicState):
    """One-electron spin-orbital density matrix."""


class LagrangeMultiplier(ElectronicState):
    """Lagrangian multiplier of a constrained energy functional."""


def is_density_like(node):
    """Density-like symbols are compared by name only."""
    return isinstance(node, (DensityMatrix, LagrangeMultiplier))


class _DependentOperator(_Tagged, MatrixSymbol):
    """Matrix operator with a dependency map and derivative tags."""

    _dependency_index = 2
    _derivative_index = 3

    def __new__(cls, name, dimension=NAO, dependencies=(), derivatives=()):
        dimension = sympify(dimension)
        cls._check_dim(dimension)
        return Basic.__new__(cls, _as_str(name), dimension,
                             _dependency_tuple(dependencies),
                             _derivative_tuple(derivatives))

    @property
    def shape(self):
        return self.args[1], self.args[1]

    def _sympystr(self, printer):
        return _format_derivatives(self.name, self.derivatives)


class OneElectronOperator(_DependentOperator):
    """One-electron operator, e.g. a dipole or kinetic energy operator."""


class TimeDerivativeOverlap(_DependentOperator):
    """Overlap-type operator produced by time-differentiated basis functions."""


class TwoElectronOperator(_Tagged, MatrixSymbol):
    """Two-electron operator contracted with an inner electronic state.

    Args:
        name: Name of the operator
        state: Inner state (a matrix expression, typically a density matrix)
        dependencies: Dependency map of the two-electron integrals
        derivatives: Derivative tags of the two-electron integrals
    """

    _dependency_index = 2
    _derivative_index = 3

    def __new__(cls, name, state, dependencies=(), derivatives=()):
        state = _check_matrix(state, "Inner state")
        return Basic.__new__(cls, _as_str(name), state,
                             _dependency_tuple(dependencies),
                             _derivative_tuple(derivatives))

    @property
    def state(self):
        return self.args[1]

    @property
    def shape(self):
        return self.state.shape

    @property
    def free_symbols(self):
        return {self} | self.state.free_symbols

    def with_state(self, state):
        """Same integrals contracted with another state."""
        return self.func(self.args[0], state, self.args[2], self.args[3])

    def _sympystr(self, printer):
        return (_format_derivatives(self.name, self.derivatives)
                + f"({printer._print(self.state)})")


class ZeroOperator(MatrixSymbol):
    """Placeholder for an operator known to vanish."""

    def __new__(cls, name='0', dimension=NAO):
        dimension = sympify(dimension)
        cls._check_dim(dimension)
        return Basic.__new__(cls, _as_str(name), dimension)

    @property
    def shape(self):
        return self.args[1], self.args[1]

    def _sympystr(self, printer):
        return self.name


class ExchangeCorrelationPotential(MatrixSymbol):
    """Exchange-correlation potential: a name and an ordered argument list."""

    def __new__(cls, name, dimension=NAO, arguments=()):
        dimension = sympify(dimension)
        cls._check_dim(dimension)
        return Basic.__new__(cls, _as_str(name), dimension,
                             Tuple(*arguments))

    @property
    def shape(self):
        return self.args[1], self.args[1]

    @property
    def arguments(self):
        return tuple(self.args[2])

    @property
    def free_symbols(self):
        return {self}.union(*[a.free_symbols for a in self.arguments])

    def _sympystr(self, printer):
        return f"{self.name}({', '.join(printer._print(a) for a in self.arguments)})"


# ============================================================================
# SCALAR FUNCTIONS
# ============================================================================


class NonElectronicFunction(_Tagged, Expr):
    """Scalar function without electronic degrees of freedom.

    Nuclear repulsion is the typical example: it carries a dependency map
    and derivative tags but no inner expression.
    """

    is_commutative = True
    _dependency_index = 1
    _derivative_index = 2

    def __new__(cls, name, dependencies=(), derivatives=()):
        return Basic.__new__(cls, _as_str(name),
                             _dependency_tuple(dependencies),
                             _derivative_tuple(derivatives))

    @property
    def name(self):
        return self.args[0].name

    def _sympystr(self, printer):
        return _format_derivatives(self.name, self.derivatives)


class TwoElectronEnergy(_Tagged, Expr):
    """Two-electron energy E(inner, outer), bilinear in the two states."""

    is_commutative = True
    _dependency_index = 3
    _derivative_index = 4

    def __new__(cls, name, inner, outer, dependencies=(), derivatives=()):
        inner = _check_matrix(inner, "Inner state")
        outer = _check_matrix(outer, "Outer state")
        return Basic.__new__(cls, _as_str(name), inner, outer,
                             _dependency_tuple(dependencies),
                             _derivative_tuple(derivatives))

    @property
    def name(self):
        return self.args[0].name

    @property
    def inner(self):
        return self.args[1]

    @property
    def outer(self):
        return self.args[2]

    def with_states(self, inner, outer):
        return self.func(self.args[0], inner, outer, self.args[3], self.args[4])

    def _sympystr(self, printer):
        return (_format_derivatives(self.name, self.derivatives)
                + f"({printer._print(self.inner)}, {printer._print(self.outer)})")


class CompositeFunction(Expr):
    """Scalar function of one inner expression, f(g)."""

    is_commutative = True

    def __new__(cls, name, inner):
        return Basic.__new__(cls, _as_str(name), sympify(inner))

    @property
    def name(self):
        return self.args[0].name

    @property
    def inner(self):
        return self.args[1]

    def _sympystr(self, printer):
        return f"{self.name}({printer._print(self.inner)})"


class ExchangeCorrelationEnergy(Expr):
    """Exchange-correlation energy: a name and an ordered argument list."""

    is_commutative = True

    def __new__(cls, name, arguments=()):
        return Basic.__new__(cls, _as_str(name), Tuple(*arguments))

    @property
    def name(self):
        return self.args[0].name

    @property
    def arguments(self):
        return tuple(self.args[1])

    def _sympystr(self, printer):
        return f"{self.name}({', '.join(printer._print(a) for a in self.arguments)})"


# ============================================================================
# MATRIX WRAPPERS
# ============================================================================

TIME_DERIVATIVE_SIDES = ('bra', 'ket')


class TimeDerivativeOperator(MatrixExpr):
    """Time derivative acting on the bra or ket side of a target operator.

    Args:
        target: Matrix expression being differentiated in time
        side: 'bra' or 'ket'
    """

    def __new__(cls, target, side='ket'):
        target = _check_matrix(target, "Target")
        side = side.name if isinstance(side, Str) else side
        if side not in TIME_DERIVATIVE_SIDES:
            raise ValueError(f"Side must be one of {TIME_DERIVATIVE_SIDES}, got {side!r}")
        return Basic.__new__(cls, target, Str(side))

    @property
    def target(self):
        return self.args[0]

    @property
    def side(self):
        return self.args[1].name

    @property
    def shape(self):
        return self.target.shape

    def with_target(self, target):
        return self.func(target, self.args[1])

    def _sympystr(self, printer):
        return f"dt_{self.side}({printer._print(self.target)})"


class ConjugateMatrix(MatrixExpr):
    """Element-wise complex conjugate of a matrix expression."""

    def __new__(cls, arg):
        return Basic.__new__(cls, _check_matrix(arg, "Argument"))

    @property
    def arg(self):
        return self.args[0]

    @property
    def shape(self):
        return self.arg.shape

    def _eval_conjugate(self):
        return self.arg

    def _sympystr(self, printer):
        return f"conjugate({printer._print(self.arg)})"


class MatrixDerivative(MatrixExpr):
    """Derivative of a matrix symbol with respect to perturbations."""

    def __new__(cls, arg, derivatives=()):
        if not isinstance(arg, MatrixSymbol):
            raise TypeError(f"Only matrix symbols can be differentiated, got {arg}")
        return Basic.__new__(cls, arg, _derivative_tuple(derivatives))

    @property
    def arg(self):
        return self.args[0]

    @property
    def derivatives(self):
        return tuple(self.args[1])

    @property
    def shape(self):
        return self.arg.shape

    def _sympystr(self, printer):
        wrt = ', '.join(p.name for p in self.derivatives)
        return f"d({printer._print(self.arg)})/d({wrt})"
