"""
respterm: keeping matched subexpressions

Keeping is removal with the condition inverted: a node is removed unless it
is structurally equal to one of the kept symbols. The simple symbols
compose correctly under that inversion, so they reuse the removal handlers.
Compound nodes do not, since a compound is never itself a kept symbol:
sums keep their kept terms, a single kept factor keeps the whole product,
and a partially kept factor (B = Bk + Br) is handled through the identity

    A*B*C - Ar*Br*Cr

where Ar, Br, Cr are the parts that are not kept (the whole factor when
nothing of it is kept). Operators linear in a wrapped state follow the
kept part of that state.
"""

from typing import Optional

from sympy import Basic, Mul, Pow, S, sympify
from sympy.matrices.expressions.matadd import MatAdd
from sympy.matrices.expressions.matmul import MatMul

from .config import settings
from .kinds import NodeKind, split_sum, split_product, base_exp, wrapped_operand
from .remove import RemoveEngine, symbol_set, replace_operand
from .zeros import remove_zeros

__all__ = ['KeepEngine', 'keep_if']


def _difference(arg, kept):
    """arg - kept, for scalars and matrices alike."""
    if arg.is_Matrix:
        return MatAdd(arg, MatMul(S.NegativeOne, kept))
    return arg - kept


class KeepEngine:
    """Keeps only subtrees equal to given symbols.

    Composes a RemoveEngine whose condition is "not one of the kept
    symbols", and replaces its handlers for the kinds whose structure does
    not survive that inversion.

    Args:
        symbols: Node or iterable of nodes to keep
        policy: Treatment of exchange-correlation functionals
        verbose: Print every rewrite
    """

    def __init__(self, symbols, policy=None, verbose=False):
        self.symbols = symbol_set(symbols)
        self.remover = RemoveEngine(
            self.is_not_kept,
            overrides={
                NodeKind.SUM: self.keep_sum,
                NodeKind.PRODUCT: self.keep_product,
                NodeKind.MATRIX_SUM: self.keep_matrix_sum,
                NodeKind.MATRIX_PRODUCT: self.keep_matrix_product,
                NodeKind.TWO_ELECTRON_OPERATOR: self.keep_one_arg,
                NodeKind.TWO_ELECTRON_ENERGY: self.keep_two_electron_energy,
                NodeKind.TIME_DERIVATIVE: self.keep_one_arg,
                NodeKind.TRACE: self.keep_one_arg,
                NodeKind.CONJUGATE: self.keep_one_arg,
                NodeKind.TRANSPOSE: self.keep_one_arg,
            },
            policy=policy,
            verbose=verbose,
            name='keep',
        )

    def is_not_kept(self, node):
        return node not in self.symbols

    def apply(self, node):
        """Kept part of `node`, or None if nothing is kept."""
        if self.is_not_kept(node):
            return self.remover.apply(node)
        return node

    def keep_sum(self, node):
        if not self.is_not_kept(node):
            return node
        coeff, terms = split_sum(node)
        kept = []
        if coeff != 0 and not self.is_not_kept(coeff):
            kept.append(coeff)
        changed = len(kept) == 0 and coeff != 0
        for term in terms:
            multiplier, rest = term.as_coeff_Mul()
            # A kept multiplier keeps its term, as a kept factor keeps a product
            if not self.is_not_kept(term) or (multiplier != 1 and not self.is_not_kept(multiplier)):
                kept.append(term)
                continue
            new_rest = self.apply(rest)
            if new_rest is None:
                changed = True
                continue
            if new_rest is not rest:
                changed = True
                term = multiplier*new_rest
            kept.append(term)
        if not kept:
            return None
        return node.func(*kept) if changed else node

    def keep_product(self, node):
        if not self.is_not_kept(node):
            return node
        coeff, factors = split_product(node)
        remainder = coeff
        partial = False
        if coeff != 1:
            new_coeff = self.apply(coeff)
            if new_coeff is not None:
                if new_coeff == coeff:
                    return node
                remainder = coeff - new_coeff
                partial = True
        remainders = []
        for factor in factors:
            # The whole factor is kept
            if not self.is_not_kept(factor):
                return node
            base, exponent = base_exp(factor)
            new_base = self.apply(base)
            if new_base is None:
                # Saved in case another factor is kept
                remainders.append(factor)
                continue
            if new_base == base:
                return node
            # (Bk + Br)^e with only Bk kept: save Br^e
            if exponent is None:
                remainders.append(base - new_base)
            else:
                if not exponent.is_Number:
                    self.remover.surviving_exponent(base, exponent)
                remainders.append(Pow(base - new_base, exponent))
            partial = True
        if not partial:
            return None
        return node - Mul(remainder, *remainders)

    def keep_matrix_sum(self, node):
        if not self.is_not_kept(node):
            return node
        return self.remover.rebuild_matrix_sum(node)

    def keep_matrix_product(self, node):
        if not self.is_not_kept(node):
            return node
        # The product A*B*C*... - Ar*Br*Cr*... starts with -1
        remainders = [S.NegativeOne]
        partial = False
        for arg in node.args:
            new_arg = self.apply(arg)
            if new_arg is None:
                remainders.append(arg)
                continue
            if new_arg == arg:
                return node
            remainders.append(_difference(arg, new_arg))
            partial = True
        if not partial:
            return None
        return MatAdd(node, MatMul(*remainders))

    def keep_one_arg(self, node):
        """Single-operand nodes linear in their operand.

        If the node is not kept as a whole, its operand is kept-processed and
        the node rebuilt around the result.
        """
        if not self.is_not_kept(node):
            return node
        arg = wrapped_operand(node)
        new_arg = self.apply(arg)
        if new_arg is None:
            return None
        if new_arg == arg:
            return node
        return replace_operand(node, new_arg)

    def keep_two_electron_energy(self, node):
        """E(inner, outer) is bilinear, so it follows the product identity."""
        if not self.is_not_kept(node):
            return node
        new_inner = self.apply(node.inner)
        new_outer = self.apply(node.outer)
        if new_inner is None and new_outer is None:
            return None
        if new_inner == node.inner or new_outer == node.outer:
            return node
        inner = node.inner if new_inner is None else _difference(node.inner, new_inner)
        outer = node.outer if new_outer is None else _difference(node.outer, new_outer)
        return node - node.with_states(inner, outer)


def keep_if(expression: Basic, symbols, remove_zero_residues=True, verbose=None,
            policy=None) -> Optional[Basic]:
    """Keep only `symbols` in `expression`, removing everything else.

    Zero quantities may appear from the subtraction identities used for
    partially kept products. They are cleaned up by remove_zeros() unless
    `remove_zero_residues` is false; callers composing several keep_if()
    calls should switch it off and clean up once at the end.

    Args:
        expression: SymPy expression
        symbols: Node or iterable of nodes to keep
        remove_zero_residues: Run remove_zeros() on the result
        verbose: Print the rewrite (default: settings 'verbose')
        policy: Treatment of exchange-correlation functionals
                (default: settings 'functional_policy')

    Returns:
        The kept expression, or None if nothing is kept

    Raises:
        UnclassifiedNodeError: If the expression holds a node of unknown kind
        NonRepresentableRewriteError: If an exponent would be removed

    Example:
        >>> a, b, c = symbols('a b c')
        >>> keep_if(a + b + c, {b})
        b
        >>> keep_if(a*b, {a})
        a*b
    """
    verbose = settings.resolve('verbose', verbose)
    expression = sympify(expression)
    engine = KeepEngine(symbols, policy=policy, verbose=verbose)

    if verbose:
        print(f"\n{'='*60}")
        print(f"KEEPING: {', '.join(map(str, engine.symbols))}")
        print(f"IN: {expression}")
        print(f"{'='*60}")

    result = engine.apply(expression)
    if result is not None and remove_zero_residues:
        result = remove_zeros(result)

    if verbose:
        print(f"RESULT: {'∅' if result is None else result}")
        print(f"{'='*60}\n")
    return result
