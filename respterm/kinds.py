"""
respterm: node-kind classification and the shared traversal core

Every traversal (find, remove, keep) is a handler table keyed by NodeKind.
The table must cover every kind, and classify() refuses any node whose
class is not listed, so a new node class cannot be silently mis-rewritten.
"""

from enum import Enum

from sympy import Add, Basic, Mul, Pow, Symbol, Trace, Transpose
from sympy.core.numbers import Number as SympyNumber, NumberSymbol, ImaginaryUnit
from sympy.matrices.expressions.matadd import MatAdd
from sympy.matrices.expressions.matmul import MatMul
from sympy.matrices.expressions.matexpr import MatrixSymbol
from sympy.matrices.expressions.special import ZeroMatrix

from .exceptions import UnclassifiedNodeError
from .symbols import (
    ElectronicState, OneElectronOperator, TwoElectronOperator,
    TimeDerivativeOverlap, ZeroOperator, ExchangeCorrelationPotential,
    NonElectronicFunction, TwoElectronEnergy, CompositeFunction,
    ExchangeCorrelationEnergy, TimeDerivativeOperator, ConjugateMatrix,
    MatrixDerivative,
)

__all__ = [
    'NodeKind', 'classify', 'Traversal',
    'split_sum', 'split_product', 'base_exp', 'wrapped_operand',
]


class NodeKind(Enum):
    """Closed set of node kinds the traversals know about."""
    SYMBOL = 'symbol'
    NUMBER = 'number'
    CONSTANT = 'constant'
    SUM = 'sum'
    PRODUCT = 'product'
    MATRIX_SYMBOL = 'matrix symbol'
    ZERO_MATRIX = 'zero matrix'
    STATE = 'electronic state'
    ONE_ELECTRON_OPERATOR = 'one-electron operator'
    TWO_ELECTRON_OPERATOR = 'two-electron operator'
    TIME_DERIVATIVE_OVERLAP = 'time-derivative overlap'
    ZERO_OPERATOR = 'zero operator'
    XC_POTENTIAL = 'exchange-correlation potential'
    NONELECTRONIC_FUNCTION = 'non-electronic function'
    TWO_ELECTRON_ENERGY = 'two-electron energy'
    COMPOSITE_FUNCTION = 'composite function'
    XC_ENERGY = 'exchange-correlation energy'
    TIME_DERIVATIVE = 'time-derivative operator'
    TRACE = 'trace'
    CONJUGATE = 'conjugate'
    TRANSPOSE = 'transpose'
    MATRIX_SUM = 'matrix sum'
    MATRIX_PRODUCT = 'matrix product'
    MATRIX_DERIVATIVE = 'matrix derivative'


# Order matters: subclasses before their bases (MatAdd is an Add, MatMul a
# Mul, every operator a MatrixSymbol)
_CLASSIFICATION = (
    (Symbol, NodeKind.SYMBOL),
    (SympyNumber, NodeKind.NUMBER),
    (NumberSymbol, NodeKind.CONSTANT),
    (ImaginaryUnit, NodeKind.CONSTANT),
    (MatAdd, NodeKind.MATRIX_SUM),
    (MatMul, NodeKind.MATRIX_PRODUCT),
    (Add, NodeKind.SUM),
    (Mul, NodeKind.PRODUCT),
    (Pow, NodeKind.PRODUCT),
    (ElectronicState, NodeKind.STATE),
    (OneElectronOperator, NodeKind.ONE_ELECTRON_OPERATOR),
    (TwoElectronOperator, NodeKind.TWO_ELECTRON_OPERATOR),
    (TimeDerivativeOverlap, NodeKind.TIME_DERIVATIVE_OVERLAP),
    (ZeroOperator, NodeKind.ZERO_OPERATOR),
    (ExchangeCorrelationPotential, NodeKind.XC_POTENTIAL),
    (MatrixSymbol, NodeKind.MATRIX_SYMBOL),
    (ZeroMatrix, NodeKind.ZERO_MATRIX),
    (NonElectronicFunction, NodeKind.NONELECTRONIC_FUNCTION),
    (TwoElectronEnergy, NodeKind.TWO_ELECTRON_ENERGY),
    (CompositeFunction, NodeKind.COMPOSITE_FUNCTION),
    (ExchangeCorrelationEnergy, NodeKind.XC_ENERGY),
    (TimeDerivativeOperator, NodeKind.TIME_DERIVATIVE),
    (Trace, NodeKind.TRACE),
    (ConjugateMatrix, NodeKind.CONJUGATE),
    (Transpose, NodeKind.TRANSPOSE),
    (MatrixDerivative, NodeKind.MATRIX_DERIVATIVE),
)


def classify(node: Basic, traversal: str = 'classify') -> NodeKind:
    """Kind of a node.

    Args:
        node: SymPy expression
        traversal: Name of the calling traversal, used in the error message

    Returns:
        NodeKind

    Raises:
        UnclassifiedNodeError: If the node's class has no kind
    """
    for cls, kind in _CLASSIFICATION:
        if isinstance(node, cls):
            return kind
    raise UnclassifiedNodeError(traversal, node)


class Traversal:
    """Generic recursive traversal over a handler table.

    Args:
        name: Name used in error messages and traces
        handlers: Dict mapping every NodeKind to a callable node -> result
        verbose: Print every rewrite that changes a node

    Raises:
        UnclassifiedNodeError: If the table misses a kind
    """

    def __init__(self, name, handlers, verbose=False):
        missing = [kind.name for kind in NodeKind if kind not in handlers]
        if missing:
            raise UnclassifiedNodeError(
                name, message=f"{name}: no rule for {', '.join(missing)}"
            )
        self.name = name
        self.handlers = dict(handlers)
        self.verbose = verbose

    def apply(self, node):
        """Dispatch `node` to the handler of its kind."""
        result = self.handlers[classify(node, self.name)](node)
        if self.verbose and not isinstance(result, set) and result is not node:
            print(f"  → {node} ↦ {'∅' if result is None else result}")
        return result


# ============================================================================
# STRUCTURE HELPERS
# ============================================================================


def split_sum(node):
    """Additive coefficient and remaining terms of a sum."""
    coeff, rest = node.as_coeff_Add()
    return coeff, Add.make_args(rest) if rest != 0 else ()


def split_product(node):
    """Multiplicative coefficient and remaining factors of a product.

    A bare power is a product with coefficient 1 and a single factor.
    """
    coeff, rest = node.as_coeff_Mul()
    return coeff, Mul.make_args(rest) if rest != 1 else ()


def base_exp(factor):
    """Base and exponent of a product factor.

    Only an explicit power carries an exponent node; any other factor has
    None so that no implicit unit exponent is ever rewritten.
    """
    if isinstance(factor, Pow):
        return factor.args
    return factor, None


def wrapped_operand(node):
    """The single operand of a trace, conjugate, transpose or time derivative.

    A two-electron operator wraps its inner state.
    """
    if isinstance(node, TwoElectronOperator):
        return node.state
    return node.args[0]
