"""
respterm: equivalence of expression nodes

Decides whether a node represents the same mathematical object as a
target. Plain SymPy nodes use structural equality; the chemistry symbols
have their own rules:

- Density-like symbols (density matrices, Lagrangian multipliers) compare
  names only, so every derivative of D is "D".
- Dependency-bearing operators and functions compare names, then their
  dependency maps and derivative tags (see dependency_equivalent()).
- Composite functions and exchange-correlation functionals compare names
  and, recursively with the same rules, their inner expressions.
- Wrappers (trace, conjugate, transpose, time derivative) match a wrapper
  of the same kind with an equivalent operand. matches() also looks for a
  target of another kind inside the operand; equivalent() does not.
"""

from sympy import Basic, Trace, Transpose

from .kinds import wrapped_operand
from .symbols import (
    is_density_like, filter_derivatives,
    OneElectronOperator, TwoElectronOperator, TimeDerivativeOverlap,
    NonElectronicFunction, TwoElectronEnergy, CompositeFunction,
    ExchangeCorrelationEnergy, ExchangeCorrelationPotential,
    TimeDerivativeOperator, ConjugateMatrix,
)

__all__ = ['matches', 'equivalent', 'dependency_equivalent', 'DEPENDENCY_BEARING', 'WRAPPERS']

DEPENDENCY_BEARING = (
    OneElectronOperator, TwoElectronOperator, TimeDerivativeOverlap,
    NonElectronicFunction, TwoElectronEnergy,
)

WRAPPERS = (Trace, ConjugateMatrix, Transpose, TimeDerivativeOperator)


def dependency_equivalent(node, target):
    """Whether a dependency-bearing node is equivalent to a target.

    Both must be of the same class and carry the same name. They are then
    equivalent if their dependency maps and derivative tags are identical,
    or if the node's derivative tags restricted to
    the target's dependency map equal the target's tags under the same
    restriction. Differentiating an operator with respect to a perturbation
    it does not depend on therefore leaves it equivalent to the
    undifferentiated operator.

    Args:
        node: Dependency-bearing node found in an expression
        target: Node being looked for

    Returns:
        bool
    """
    if type(node) is not type(target) or node.name != target.name:
        return False
    if node.dependencies == target.dependencies and node.derivatives == target.derivatives:
        return True
    dependencies = target.dependencies
    return (filter_derivatives(node.derivatives, dependencies)
            == filter_derivatives(target.derivatives, dependencies))


def _match(target, node, inside):
    if is_density_like(node):
        return type(target) is type(node) and target.name == node.name

    if isinstance(node, DEPENDENCY_BEARING):
        return dependency_equivalent(node, target)

    if isinstance(node, CompositeFunction):
        return (type(target) is type(node)
                and target.name == node.name
                and _match(target.inner, node.inner, inside))

    if isinstance(node, (ExchangeCorrelationEnergy, ExchangeCorrelationPotential)):
        return (type(target) is type(node)
                and target.name == node.name
                and len(target.arguments) == len(node.arguments)
                and all(_match(t, n, inside) for t, n in zip(target.arguments, node.arguments)))

    if isinstance(node, WRAPPERS):
        if type(target) is not type(node):
            return inside and _match(target, wrapped_operand(node), inside)
        if isinstance(node, TimeDerivativeOperator) and target.side != node.side:
            return False
        return _match(wrapped_operand(target), wrapped_operand(node), inside)

    return target == node


def matches(target: Basic, node: Basic) -> bool:
    """Whether `node` represents `target` or, for a wrapper, contains it.

    A wrapper of another kind than the target matches when its operand
    does, so `matches(D, Trace(D))` holds.

    Args:
        target: Node being looked for
        node: Node of an expression

    Returns:
        bool
    """
    return _match(target, node, True)


def equivalent(target: Basic, node: Basic) -> bool:
    """Whether `node` as a whole represents the same object as `target`.

    Same rules as matches(), except that a wrapper only ever equals a
    wrapper of its own kind. Find tests whole nodes, terms and factors with
    this, and leaves looking inside wrappers to its traversal, so a target
    is found the same way wherever its wrapper sits.
    """
    return _match(target, node, False)
