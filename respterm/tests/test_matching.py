"""Tests for node equivalence."""

from sympy import Trace, Transpose, symbols

from respterm import (
    Perturbation, DensityMatrix, LagrangeMultiplier, OneElectronOperator,
    CompositeFunction, ExchangeCorrelationEnergy, TimeDerivativeOperator,
    matches, equivalent, dependency_equivalent,
)

a, b = symbols('a b')
el = Perturbation('el')
geo = Perturbation('geo')
D = DensityMatrix('D')


class TestMatches:
    """Tests for matches()."""

    def test_plain_nodes(self):
        """Plain SymPy nodes compare structurally."""
        assert matches(a, a)
        assert not matches(a, b)
        assert matches(a + b, b + a)

    def test_density_like_by_name(self):
        """Derivatives of D are still D."""
        assert matches(D, D.differentiate(el))
        assert not matches(D, DensityMatrix('C'))
        assert not matches(D, LagrangeMultiplier('D'))

    def test_dependency_outside_map(self):
        """A derivative outside the dependency map is ignored."""
        h = OneElectronOperator('h', dependencies=[el])
        assert matches(h, h.differentiate(geo))
        assert not matches(h, h.differentiate(el))

    def test_equivalent_wrappers(self):
        """As whole nodes, wrappers only equal wrappers of their kind."""
        assert equivalent(Trace(D), Trace(D.differentiate(el)))
        assert not equivalent(D, Trace(D))
        # Nested comparisons follow the outer rule
        X = ExchangeCorrelationEnergy('Exc', (D,))
        XT = ExchangeCorrelationEnergy('Exc', (Transpose(D),))
        assert matches(X, XT)
        assert not equivalent(X, XT)

    def test_dependency_exact(self):
        """Tags outside the dependency map are ignored."""
        h = OneElectronOperator('h', dependencies=[el])
        assert dependency_equivalent(h, h)
        assert dependency_equivalent(h.differentiate(geo), h)
        assert not dependency_equivalent(h.differentiate(el), h)
        assert not dependency_equivalent(OneElectronOperator('V'), h)

    def test_composite_function(self):
        """Inner expressions are compared with the same rules."""
        f = CompositeFunction('f', Trace(D))
        assert matches(f, CompositeFunction('f', Trace(D.differentiate(el))))
        assert not matches(f, CompositeFunction('g', Trace(D)))

    def test_functionals(self):
        """Arguments are compared elementwise."""
        X = ExchangeCorrelationEnergy('Exc', (D,))
        assert matches(X, ExchangeCorrelationEnergy('Exc', (D.differentiate(el),)))
        assert not matches(X, ExchangeCorrelationEnergy('Exc', (D, D)))

    def test_wrappers(self):
        """Wrappers compare operands, or contain the target."""
        assert matches(Trace(D), Trace(D.differentiate(el)))
        assert matches(D, Trace(D))
        assert not matches(Trace(D), D)
        assert matches(TimeDerivativeOperator(D), TimeDerivativeOperator(D))
        assert not matches(TimeDerivativeOperator(D, 'bra'), TimeDerivativeOperator(D, 'ket'))
