"""Tests for node-kind classification and the traversal core."""

import pytest
from sympy import Integer, MatrixSymbol, Trace, Transpose, pi, sin, symbols

from respterm import (
    NAO, NodeKind, classify, Traversal, UnclassifiedNodeError,
    DensityMatrix, OneElectronOperator, TwoElectronOperator, ZeroOperator,
    TimeDerivativeOperator, ConjugateMatrix,
)
from respterm.kinds import split_sum, split_product, base_exp

a, b = symbols('a b')
A = MatrixSymbol('A', NAO, NAO)
B = MatrixSymbol('B', NAO, NAO)
D = DensityMatrix('D')


class TestClassify:
    """Tests for classify()."""

    def test_scalars(self):
        """Scalar leaves and compounds."""
        assert classify(a) == NodeKind.SYMBOL
        assert classify(Integer(3)) == NodeKind.NUMBER
        assert classify(pi) == NodeKind.CONSTANT
        assert classify(a + b) == NodeKind.SUM
        assert classify(a*b) == NodeKind.PRODUCT
        assert classify(a**2) == NodeKind.PRODUCT

    def test_matrices(self):
        """Matrix compounds are not mistaken for scalar ones."""
        assert classify(A) == NodeKind.MATRIX_SYMBOL
        assert classify(A + B) == NodeKind.MATRIX_SUM
        assert classify(A*B) == NodeKind.MATRIX_PRODUCT
        assert classify(Trace(A)) == NodeKind.TRACE
        assert classify(Transpose(A)) == NodeKind.TRANSPOSE
        assert classify(ConjugateMatrix(A)) == NodeKind.CONJUGATE

    def test_chemistry_symbols(self):
        """Subclasses of MatrixSymbol get their own kind."""
        assert classify(D) == NodeKind.STATE
        assert classify(OneElectronOperator('h')) == NodeKind.ONE_ELECTRON_OPERATOR
        assert classify(TwoElectronOperator('G', D)) == NodeKind.TWO_ELECTRON_OPERATOR
        assert classify(ZeroOperator()) == NodeKind.ZERO_OPERATOR
        assert classify(TimeDerivativeOperator(D)) == NodeKind.TIME_DERIVATIVE

    def test_unknown_node(self):
        """Unknown classes raise, naming the traversal and the node."""
        with pytest.raises(UnclassifiedNodeError) as excinfo:
            classify(sin(a), 'find')
        assert excinfo.value.traversal == 'find'
        assert excinfo.value.node == sin(a)
        assert 'sin' in str(excinfo.value)


class TestTraversal:
    """Tests for the handler table check."""

    def test_missing_kinds(self):
        """A partial table is refused at construction."""
        with pytest.raises(UnclassifiedNodeError) as excinfo:
            Traversal('partial', {NodeKind.SYMBOL: lambda node: node})
        assert 'SUM' in str(excinfo.value)

    def test_dispatch(self):
        """apply() calls the handler of the node's kind."""
        handlers = {kind: (lambda node, kind=kind: kind) for kind in NodeKind}
        traversal = Traversal('kinds', handlers)
        assert traversal.apply(a + b) == NodeKind.SUM
        assert traversal.apply(D) == NodeKind.STATE


class TestStructureHelpers:
    """Tests for sum and product decomposition."""

    def test_split_sum(self):
        """Additive coefficient and terms."""
        coeff, terms = split_sum(a + 2*b + 1)
        assert coeff == 1
        assert set(terms) == {a, 2*b}
        assert split_sum(a) == (0, (a,))

    def test_split_product(self):
        """Multiplicative coefficient and factors."""
        coeff, factors = split_product(3*a*b**2)
        assert coeff == 3
        assert set(factors) == {a, b**2}
        assert split_product(a**2) == (1, (a**2,))

    def test_base_exp(self):
        """Only powers carry an exponent."""
        assert base_exp(a**2) == (a, 2)
        assert base_exp(a) == (a, None)
