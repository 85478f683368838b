"""
respterm: finding every occurrence of a target in an expression

The result is a set of whole nodes of the expression equivalent to the
target, never a synthesized partial expression.
"""

from typing import Set

from sympy import Basic, sympify

from .config import settings
from .kinds import NodeKind, Traversal, split_sum, split_product, base_exp, wrapped_operand
from .matching import equivalent
from .symbols import TimeDerivativeOperator

__all__ = ['FindEngine', 'find_all']


class FindEngine:
    """Collects all subtrees equivalent to a target.

    Args:
        target: Node to look for
        verbose: Print every match

    Example:
        >>> D = DensityMatrix('D')
        >>> FindEngine(D).apply(Trace(h*D.differentiate(el)))
        {D^(el)}
    """

    def __init__(self, target, verbose=False):
        self.target = sympify(target)
        self.verbose = verbose
        leaf = self._find_equivalence
        self.traversal = Traversal('find', {
            NodeKind.SYMBOL: leaf,
            NodeKind.NUMBER: leaf,
            NodeKind.CONSTANT: leaf,
            NodeKind.MATRIX_SYMBOL: leaf,
            NodeKind.ZERO_MATRIX: leaf,
            NodeKind.ZERO_OPERATOR: leaf,
            NodeKind.STATE: leaf,
            NodeKind.ONE_ELECTRON_OPERATOR: leaf,
            NodeKind.TIME_DERIVATIVE_OVERLAP: leaf,
            NodeKind.NONELECTRONIC_FUNCTION: leaf,
            NodeKind.SUM: self._find_sum,
            NodeKind.PRODUCT: self._find_product,
            NodeKind.TWO_ELECTRON_OPERATOR: self._find_two_electron_operator,
            NodeKind.TWO_ELECTRON_ENERGY: self._find_two_electron_energy,
            NodeKind.COMPOSITE_FUNCTION: self._find_composite_function,
            NodeKind.XC_ENERGY: self._find_functional,
            NodeKind.XC_POTENTIAL: self._find_functional,
            NodeKind.TIME_DERIVATIVE: self._find_wrapper,
            NodeKind.TRACE: self._find_wrapper,
            NodeKind.CONJUGATE: self._find_wrapper,
            NodeKind.TRANSPOSE: self._find_wrapper,
            NodeKind.MATRIX_SUM: self._find_operands,
            NodeKind.MATRIX_PRODUCT: self._find_operands,
            NodeKind.MATRIX_DERIVATIVE: self._find_matrix_derivative,
        })

    def apply(self, node):
        """Set of nodes in `node` equivalent to the target."""
        return self.traversal.apply(node)

    def _found(self, node):
        if self.verbose:
            print(f"  • found {node}")
        return {node}

    def _find_equivalence(self, node):
        return self._found(node) if equivalent(self.target, node) else set()

    def _find_sum(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        coeff, terms = split_sum(node)
        # A matching coefficient ends the scan of the pairs
        if coeff != 0 and equivalent(self.target, coeff):
            return self._found(coeff)
        result = set()
        for term in terms:
            multiplier, rest = term.as_coeff_Mul()
            if equivalent(self.target, term):
                result |= self._found(term)
                continue
            if multiplier != 1 and equivalent(self.target, multiplier):
                result |= self._found(multiplier)
                continue
            result |= self.apply(rest)
        return result

    def _find_product(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        coeff, factors = split_product(node)
        if coeff != 1 and equivalent(self.target, coeff):
            return self._found(coeff)
        result = set()
        for factor in factors:
            if equivalent(self.target, factor):
                result |= self._found(factor)
                continue
            base, exponent = base_exp(factor)
            result |= self.apply(base)
            if exponent is not None:
                result |= self.apply(exponent)
        return result

    def _find_two_electron_operator(self, node):
        # Integrals first, then the contracted state
        if equivalent(self.target, node):
            return self._found(node)
        return self.apply(node.state)

    def _find_two_electron_energy(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        return self.apply(node.inner) | self.apply(node.outer)

    def _find_composite_function(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        return self.apply(node.inner)

    def _find_functional(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        result = set()
        for argument in node.arguments:
            result |= self.apply(argument)
        return result

    def _find_wrapper(self, node):
        """Trace, conjugate, transpose and time derivative.

        When the target is the same kind of wrapper, its operand is looked
        for inside this node's operand, and any hit promotes this whole
        node into the result. Otherwise the target is looked for inside the
        operand.
        """
        if type(self.target) is type(node):
            if isinstance(node, TimeDerivativeOperator) and self.target.side != node.side:
                return set()
            inner = FindEngine(wrapped_operand(self.target), self.verbose)
            if inner.apply(wrapped_operand(node)):
                return self._found(node)
            return set()
        return self.apply(wrapped_operand(node))

    def _find_operands(self, node):
        if equivalent(self.target, node):
            return self._found(node)
        result = set()
        for arg in node.args:
            result |= self.apply(arg)
        return result

    def _find_matrix_derivative(self, node):
        # Derivatives are not decomposed further
        if equivalent(self.target, node) or node.arg == self.target:
            return self._found(node)
        return set()


def find_all(expression: Basic, target: Basic, verbose=None) -> Set[Basic]:
    """Find every occurrence of `target` in `expression`.

    Args:
        expression: SymPy expression
        target: Node to look for
        verbose: Print the search (default: settings 'verbose')

    Returns:
        Set of matched nodes (empty if there is none)

    Raises:
        UnclassifiedNodeError: If the expression holds a node of unknown kind
    """
    verbose = settings.resolve('verbose', verbose)
    expression = sympify(expression)
    if verbose:
        print(f"\n{'='*60}")
        print(f"FIND: {target} IN {expression}")
        print(f"{'='*60}")

    result = FindEngine(target, verbose).apply(expression)

    if verbose:
        print(f"FOUND: {', '.join(str(n) for n in result) if result else 'nothing'}")
        print(f"{'='*60}\n")
    return result
