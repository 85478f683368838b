"""
respterm: zero-cleanup pass

Removes the additive and multiplicative zero residues that removing and
keeping may leave behind: zero terms of sums, products with a zero factor,
zero matrices in matrix sums, traces of zero matrices. Inexact numbers
within the zero tolerance count as zero.
"""

import numpy as np
from sympy import Add, Basic, Mul, Pow, S, Trace, sympify
from sympy.matrices.expressions.matadd import MatAdd
from sympy.matrices.expressions.matmul import MatMul
from sympy.matrices.expressions.special import ZeroMatrix

from .config import settings
from .kinds import NodeKind, Traversal, base_exp, wrapped_operand
from .remove import replace_operand

__all__ = ['ZeroCleaner', 'remove_zeros', 'is_negligible']


def is_negligible(number, tolerance):
    """Whether a SymPy number is zero, exactly or within `tolerance`.

    Exact rationals are only zero when they are exactly zero; floats and
    complex floats are compared with an absolute tolerance.

    Args:
        number: SymPy Number
        tolerance: Absolute tolerance for inexact numbers

    Returns:
        bool
    """
    if number.is_zero:
        return True
    if number.is_Rational:
        return False
    return bool(np.isclose(complex(number), 0, rtol=0, atol=tolerance))


def _is_zero(node):
    return isinstance(node, ZeroMatrix) or node == S.Zero


def _scaled(coeff, matrices):
    """coeff * M1 * M2 * ... without evaluating the matrix product."""
    if coeff == 1:
        return matrices[0] if len(matrices) == 1 else MatMul(*matrices)
    return MatMul(coeff, *matrices)


class ZeroCleaner:
    """Bottom-up rewrite replacing zero residues by the algebra's zeros.

    Args:
        tolerance: Absolute tolerance for inexact numbers
                   (default: settings 'zero_tolerance')
        verbose: Print every rewrite
    """

    def __init__(self, tolerance=None, verbose=False):
        self.tolerance = settings.resolve('zero_tolerance', tolerance)
        same = self._unchanged
        self.traversal = Traversal('remove_zeros', {
            NodeKind.SYMBOL: same,
            NodeKind.CONSTANT: same,
            NodeKind.MATRIX_SYMBOL: same,
            NodeKind.ZERO_MATRIX: same,
            NodeKind.STATE: same,
            NodeKind.ONE_ELECTRON_OPERATOR: same,
            NodeKind.TIME_DERIVATIVE_OVERLAP: same,
            NodeKind.NONELECTRONIC_FUNCTION: same,
            NodeKind.MATRIX_DERIVATIVE: same,
            NodeKind.NUMBER: self._clean_number,
            NodeKind.ZERO_OPERATOR: self._clean_zero_operator,
            NodeKind.SUM: self._clean_sum,
            NodeKind.PRODUCT: self._clean_product,
            NodeKind.TWO_ELECTRON_OPERATOR: self._clean_linear,
            NodeKind.TIME_DERIVATIVE: self._clean_linear,
            NodeKind.CONJUGATE: self._clean_linear,
            NodeKind.TRANSPOSE: self._clean_linear,
            NodeKind.TRACE: self._clean_trace,
            NodeKind.TWO_ELECTRON_ENERGY: self._clean_two_electron_energy,
            NodeKind.COMPOSITE_FUNCTION: self._clean_composite_function,
            NodeKind.XC_ENERGY: self._clean_functional,
            NodeKind.XC_POTENTIAL: self._clean_functional,
            NodeKind.MATRIX_SUM: self._clean_matrix_sum,
            NodeKind.MATRIX_PRODUCT: self._clean_matrix_product,
        }, verbose)

    def apply(self, node):
        return self.traversal.apply(node)

    def _unchanged(self, node):
        return node

    def _clean_number(self, node):
        return S.Zero if is_negligible(node, self.tolerance) else node

    def _clean_zero_operator(self, node):
        return ZeroMatrix(*node.shape)

    def _clean_sum(self, node):
        args = [self.apply(arg) for arg in node.args]
        survivors = [arg for arg in args if not _is_zero(arg)]
        if not survivors:
            return S.Zero
        if len(survivors) == len(node.args) and all(a is b for a, b in zip(args, node.args)):
            return node
        return Add(*survivors)

    def _clean_product(self, node):
        base, exponent = base_exp(node)
        if exponent is not None:
            new_base = self.apply(base)
            new_exponent = self.apply(exponent)
            if new_base is base and new_exponent is exponent:
                return node
            return Pow(new_base, new_exponent)
        args = [self.apply(arg) for arg in node.args]
        if any(_is_zero(arg) for arg in args):
            return S.Zero
        if all(a is b for a, b in zip(args, node.args)):
            return node
        return Mul(*args)

    def _clean_linear(self, node):
        """Operators linear in their state, target or operand."""
        operand = wrapped_operand(node)
        new_operand = self.apply(operand)
        if _is_zero(new_operand):
            return ZeroMatrix(*node.shape)
        if new_operand is operand:
            return node
        return replace_operand(node, new_operand)

    def _clean_trace(self, node):
        operand = wrapped_operand(node)
        new_operand = self.apply(operand)
        if _is_zero(new_operand):
            return S.Zero
        return node if new_operand is operand else Trace(new_operand)

    def _clean_two_electron_energy(self, node):
        inner = self.apply(node.inner)
        outer = self.apply(node.outer)
        if _is_zero(inner) or _is_zero(outer):
            return S.Zero
        if inner is node.inner and outer is node.outer:
            return node
        return node.with_states(inner, outer)

    def _clean_composite_function(self, node):
        # f(0) need not vanish, only the inner expression is cleaned
        inner = self.apply(node.inner)
        return node if inner is node.inner else node.func(node.args[0], inner)

    def _clean_functional(self, node):
        arguments = [self.apply(a) for a in node.arguments]
        if all(a is b for a, b in zip(arguments, node.arguments)):
            return node
        # The argument list is always the last of the node's args
        return node.func(*node.args[:-1], arguments)

    def _clean_matrix_sum(self, node):
        # Collect like terms c1*X + c2*X -> (c1 + c2)*X, in order of appearance
        coefficients = {}
        flattened = []
        for arg in node.args:
            term = self.apply(arg)
            # Nested sums are merged so that their terms can cancel
            flattened.extend(term.args if isinstance(term, MatAdd) else (term,))
        for term in flattened:
            if _is_zero(term):
                continue
            if isinstance(term, MatMul):
                coeff, matrices = term.as_coeff_matrices()
            else:
                coeff, matrices = S.One, [term]
            key = tuple(matrices)
            coefficients[key] = coefficients.get(key, S.Zero) + coeff
        terms = []
        for matrices, coeff in coefficients.items():
            coeff = self.apply(sympify(coeff))
            if _is_zero(coeff):
                continue
            terms.append(_scaled(coeff, list(matrices)))
        if not terms:
            return ZeroMatrix(*node.shape)
        if len(terms) == len(node.args) and all(a == b for a, b in zip(terms, node.args)):
            return node
        return terms[0] if len(terms) == 1 else MatAdd(*terms)

    def _clean_matrix_product(self, node):
        args = [self.apply(arg) for arg in node.args]
        if any(_is_zero(arg) for arg in args):
            return ZeroMatrix(*node.shape)
        if all(a is b for a, b in zip(args, node.args)):
            return node
        return MatMul(*args)


def remove_zeros(expression: Basic, tolerance=None, verbose=None) -> Basic:
    """Remove zero residues from `expression`.

    Args:
        expression: SymPy expression
        tolerance: Absolute tolerance under which an inexact number is zero
                   (default: settings 'zero_tolerance')
        verbose: Print every rewrite (default: settings 'verbose')

    Returns:
        Cleaned expression; S.Zero or a ZeroMatrix when everything vanishes

    Raises:
        UnclassifiedNodeError: If the expression holds a node of unknown kind

    Example:
        >>> a, b = symbols('a b')
        >>> remove_zeros(Add(a, Mul(0, b, evaluate=False), evaluate=False))
        a
    """
    verbose = settings.resolve('verbose', verbose)
    return ZeroCleaner(tolerance, verbose).apply(sympify(expression))
