"""
respterm: removing matched subexpressions

Removal is exact: whatever remains is algebraically equal to the input with
every matched term set to zero. A removed term vanishes from a sum, a
removed factor removes its whole product, and a matrix product cannot lose
a factor.

`None` stands for "nothing left", distinct from S.Zero and ZeroMatrix.
"""

from typing import Optional

from sympy import Add, Basic, Mul, Pow, S, sympify
from sympy.matrices.expressions.matadd import MatAdd
from sympy.matrices.expressions.matmul import MatMul

from .config import settings
from .exceptions import NonRepresentableRewriteError
from .kinds import NodeKind, Traversal, split_sum, split_product, base_exp, wrapped_operand
from .symbols import (
    TwoElectronOperator, TimeDerivativeOperator,
    ExchangeCorrelationEnergy, ExchangeCorrelationPotential,
)

__all__ = ['RemoveEngine', 'remove_if', 'symbol_set', 'replace_operand']

FUNCTIONALS = (ExchangeCorrelationEnergy, ExchangeCorrelationPotential)


def symbol_set(symbols):
    """Frozen set of nodes from a single node or an iterable of nodes."""
    if isinstance(symbols, Basic):
        return frozenset((symbols,))
    return frozenset(sympify(s) for s in symbols)


def replace_operand(node, operand):
    """Rebuild a single-operand node around a new operand."""
    if isinstance(node, TwoElectronOperator):
        return node.with_state(operand)
    if isinstance(node, TimeDerivativeOperator):
        return node.with_target(operand)
    return node.func(operand)


class RemoveEngine:
    """Removes every subtree satisfying a condition.

    Args:
        condition: Callable node -> bool, true for nodes to remove
        overrides: Dict NodeKind -> handler replacing the default handlers
        policy: How exchange-correlation functionals are treated
                (default: settings 'functional_policy')
        verbose: Print every rewrite
        name: Name of the traversal in traces and error messages
    """

    def __init__(self, condition, overrides=None, policy=None, verbose=False, name='remove'):
        self.condition = condition
        self.policy = settings.resolve('functional_policy', policy)
        handlers = self.handlers()
        if overrides:
            handlers.update(overrides)
        self.traversal = Traversal(name, handlers, verbose)

    def handlers(self):
        """Default handler table."""
        leaf = self.remove_if_symbol_like
        return {
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
            # Operators wrapping a state or target go whole or not at all
            NodeKind.TWO_ELECTRON_OPERATOR: leaf,
            NodeKind.TWO_ELECTRON_ENERGY: leaf,
            NodeKind.TIME_DERIVATIVE: leaf,
            NodeKind.COMPOSITE_FUNCTION: leaf,
            NodeKind.MATRIX_DERIVATIVE: leaf,
            NodeKind.XC_ENERGY: leaf,
            NodeKind.XC_POTENTIAL: leaf,
            NodeKind.SUM: self.remove_sum,
            NodeKind.PRODUCT: self.remove_product,
            NodeKind.TRACE: self.remove_one_arg,
            NodeKind.CONJUGATE: self.remove_one_arg,
            NodeKind.TRANSPOSE: self.remove_one_arg,
            NodeKind.MATRIX_SUM: self.remove_matrix_sum,
            NodeKind.MATRIX_PRODUCT: self.remove_matrix_product,
        }

    def apply(self, node):
        """Rewritten node, or None if nothing is left."""
        return self.traversal.apply(node)

    def removes(self, node):
        """Whether `node` is removed as a whole.

        Under the passthrough policy functionals are never removed, wherever
        they sit: as the root, a term, a factor or a matrix operand.
        """
        if self.policy == 'passthrough' and isinstance(node, FUNCTIONALS):
            return False
        return self.condition(node)

    def remove_if_symbol_like(self, node):
        return None if self.removes(node) else node

    def remove_sum(self, node):
        if self.removes(node):
            return None
        coeff, terms = split_sum(node)
        changed = False
        if coeff != 0 and self.removes(coeff):
            coeff = S.Zero
            changed = True
        kept = [coeff]
        for term in terms:
            multiplier, rest = term.as_coeff_Mul()
            # Skip the pair if it is removed as a whole or by its multiplier
            if self.removes(term) or (multiplier != 1 and self.removes(multiplier)):
                changed = True
                continue
            new_rest = self.apply(rest)
            if new_rest is None:
                changed = True
                continue
            if new_rest is not rest:
                changed = True
                term = multiplier*new_rest
            kept.append(term)
        return Add(*kept) if changed else node

    def remove_product(self, node):
        if self.removes(node):
            return None
        coeff, factors = split_product(node)
        # A product cannot survive without its coefficient
        if coeff != 1 and self.removes(coeff):
            return None
        changed = False
        new_factors = []
        for factor in factors:
            if self.removes(factor):
                return None
            base, exponent = base_exp(factor)
            new_base = self.apply(base)
            if new_base is None:
                return None
            if exponent is None:
                new_factor = new_base
            else:
                new_exponent = self.surviving_exponent(base, exponent)
                if new_base is base and new_exponent is exponent:
                    new_factor = factor
                else:
                    new_factor = Pow(new_base, new_exponent)
            changed = changed or new_factor is not factor
            new_factors.append(new_factor)
        return Mul(coeff, *new_factors) if changed else node

    def surviving_exponent(self, base, exponent):
        """Processed exponent of `base`, which must not vanish.

        Raises:
            NonRepresentableRewriteError: If the exponent would be removed
        """
        new_exponent = self.apply(exponent)
        if new_exponent is None:
            raise NonRepresentableRewriteError(base, exponent)
        return new_exponent

    def remove_one_arg(self, node):
        """Trace, conjugate and transpose follow their operand."""
        arg = wrapped_operand(node)
        new_arg = self.apply(arg)
        if new_arg is None:
            return None
        if new_arg is arg:
            return node
        return replace_operand(node, new_arg)

    def remove_matrix_sum(self, node):
        if self.removes(node):
            return None
        return self.rebuild_matrix_sum(node)

    def rebuild_matrix_sum(self, node):
        """Matrix sum of the rewritten terms, dropping the absent ones."""
        terms = []
        for arg in node.args:
            new_arg = self.apply(arg)
            if new_arg is not None:
                terms.append(new_arg)
        if not terms:
            return None
        if len(terms) == len(node.args) and all(t is a for t, a in zip(terms, node.args)):
            return node
        return terms[0] if len(terms) == 1 else MatAdd(*terms)

    def remove_matrix_product(self, node):
        if self.removes(node):
            return None
        factors = []
        for arg in node.args:
            new_arg = self.apply(arg)
            # Non-commutative: dropping a factor would change the product
            if new_arg is None:
                return None
            factors.append(new_arg)
        if all(f is a for f, a in zip(factors, node.args)):
            return node
        return MatMul(*factors)


def remove_if(expression: Basic, symbols_or_predicate, verbose=None,
              policy=None) -> Optional[Basic]:
    """Remove matched subexpressions from `expression`.

    Args:
        expression: SymPy expression
        symbols_or_predicate: Callable node -> bool, or a node or iterable
            of nodes removed wherever they are structurally equal
        verbose: Print the rewrite (default: settings 'verbose')
        policy: Treatment of exchange-correlation functionals
                (default: settings 'functional_policy')

    Returns:
        The remaining expression, or None if everything was removed

    Raises:
        UnclassifiedNodeError: If the expression holds a node of unknown kind
        NonRepresentableRewriteError: If an exponent would be removed

    Example:
        >>> a, b, c = symbols('a b c')
        >>> remove_if(a + b + c, {b})
        a + c
        >>> remove_if(a*b, {a}) is None
        True
    """
    verbose = settings.resolve('verbose', verbose)
    expression = sympify(expression)
    if isinstance(symbols_or_predicate, Basic) or not callable(symbols_or_predicate):
        symbols = symbol_set(symbols_or_predicate)
        condition = symbols.__contains__
    else:
        symbols = None
        condition = symbols_or_predicate

    if verbose:
        print(f"\n{'='*60}")
        print(f"REMOVING: {', '.join(map(str, symbols)) if symbols is not None else condition}")
        print(f"FROM: {expression}")
        print(f"{'='*60}")

    result = RemoveEngine(condition, policy=policy, verbose=verbose).apply(expression)

    if verbose:
        print(f"RESULT: {'∅' if result is None else result}")
        print(f"{'='*60}\n")
    return result
