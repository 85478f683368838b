"""Tests for perturbations and the chemistry node classes."""

import pytest
from sympy import Symbol, Rational, sstr

from respterm import (
    NAO, Perturbation, make_perturbation, perturbation_tuple,
    DensityMatrix, LagrangeMultiplier, OneElectronOperator, TwoElectronOperator,
    TwoElectronEnergy, NonElectronicFunction, CompositeFunction,
    ExchangeCorrelationEnergy, ExchangeCorrelationPotential,
    TimeDerivativeOperator, MatrixDerivative, ZeroOperator,
    filter_derivatives,
)

el = Perturbation('el', 0, {0, 1, 2})
mag = Perturbation('mag')


class TestPerturbation:
    """Tests for perturbation identity."""

    def test_components_are_unordered(self):
        """Component order does not matter."""
        assert Perturbation('el', 0, [2, 1, 0]) == el
        assert hash(Perturbation('el', 0, [2, 1, 0])) == hash(el)

    def test_components_distinguish(self):
        """Different component sets are different perturbations."""
        assert Perturbation('el', 0, {0}) != el

    def test_frequency_distinguishes(self):
        """Different frequencies are different perturbations."""
        assert Perturbation('el', Rational(1, 2), {0, 1, 2}) != el
        assert Perturbation('el', Rational(1, 2)).same_variable(Perturbation('el', Rational(1, 2), {1}))
        assert not Perturbation('el', Rational(1, 2)).same_variable(Perturbation('el'))

    def test_not_equal_to_plain_symbol(self):
        """A perturbation is not the plain symbol of the same name."""
        assert Perturbation('mag') != Symbol('mag')

    def test_invalid_arguments(self):
        """Symbolic frequencies and negative components are rejected."""
        with pytest.raises(TypeError):
            Perturbation('el', Symbol('w'))
        with pytest.raises(ValueError):
            Perturbation('el', 0, {-1})

    def test_make_perturbation(self):
        """Helper builds the same perturbation."""
        assert make_perturbation('el', 0, (0, 1, 2)) == el

    def test_perturbation_tuple_is_a_multiset(self):
        """Order independent, multiplicity sensitive."""
        assert perturbation_tuple([mag, el]) == perturbation_tuple([el, mag])
        assert perturbation_tuple([el, el]) != perturbation_tuple([el])
        with pytest.raises(TypeError):
            perturbation_tuple([Symbol('x')])


class TestTaggedSymbols:
    """Tests for states, operators and functions."""

    def test_state_identity(self):
        """States are equal by name and derivatives."""
        D = DensityMatrix('D')
        assert D == DensityMatrix('D')
        assert D.shape == (NAO, NAO)
        assert D.differentiate(el) != D
        assert D.differentiate(el, mag) == D.differentiate(mag).differentiate(el)
        assert D.differentiate(el, el) != D.differentiate(el)

    def test_state_kinds_differ(self):
        """A density matrix is not a multiplier of the same name."""
        assert DensityMatrix('D') != LagrangeMultiplier('D')

    def test_reconstruction(self):
        """func(*args) rebuilds every node."""
        D = DensityMatrix('D')
        h = OneElectronOperator('h', dependencies=[el]).differentiate(el)
        nodes = [
            D.differentiate(el),
            h,
            TwoElectronOperator('G', D, dependencies=[el]),
            TwoElectronEnergy('E2', D, D),
            NonElectronicFunction('hnuc', dependencies=[mag]),
            CompositeFunction('f', Symbol('x')),
            ExchangeCorrelationEnergy('Exc', (D,)),
            ExchangeCorrelationPotential('Fxc', NAO, (D,)),
            TimeDerivativeOperator(D, 'bra'),
            MatrixDerivative(D, (el,)),
            ZeroOperator(),
        ]
        for node in nodes:
            assert node.func(*node.args) == node

    def test_dependencies(self):
        """Dependency maps merge components per perturbation."""
        h = OneElectronOperator('h', dependencies=[(el, {0}), (el, {1})])
        assert h.dependencies == {el: frozenset({0, 1})}

    def test_filter_all_components(self):
        """An empty component set allows every component."""
        dependencies = {Perturbation('el'): frozenset()}
        tag = Perturbation('el', 0, {2})
        assert filter_derivatives((tag, mag), dependencies) == (tag,)

    def test_filter_derivatives(self):
        """Only tags inside the dependency map survive."""
        dependencies = {Perturbation('el'): frozenset({0})}
        inside = Perturbation('el', 0, {0})
        outside = Perturbation('el', 0, {1})
        assert filter_derivatives((inside, outside, mag), dependencies) == (inside,)

    def test_two_electron_operator_needs_matrix(self):
        """Inner states must be matrices."""
        with pytest.raises(TypeError):
            TwoElectronOperator('G', Symbol('x'))

    def test_two_electron_operator_state(self):
        """with_state keeps the integrals."""
        D, L = DensityMatrix('D'), LagrangeMultiplier('L')
        G = TwoElectronOperator('G', D, dependencies=[el])
        assert G.state == D
        assert G.with_state(L) == TwoElectronOperator('G', L, dependencies=[el])

    def test_time_derivative_side(self):
        """Only bra and ket sides exist."""
        D = DensityMatrix('D')
        assert TimeDerivativeOperator(D).side == 'ket'
        assert TimeDerivativeOperator(D, 'bra') != TimeDerivativeOperator(D, 'ket')
        with pytest.raises(ValueError):
            TimeDerivativeOperator(D, 'both')

    def test_matrix_derivative_needs_symbol(self):
        """Only matrix symbols are differentiated."""
        D = DensityMatrix('D')
        with pytest.raises(TypeError):
            MatrixDerivative(D*D, (el,))

    def test_printing(self):
        """Derivative tags are printed after the name."""
        D = DensityMatrix('D')
        assert sstr(D.differentiate(el)) == 'D^(el)'
        assert sstr(TwoElectronOperator('G', D)) == 'G(D)'
