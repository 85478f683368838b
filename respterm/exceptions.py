"""
Faults raised by the rewriting traversals.

Both are fatal for the current call. Nothing inside a traversal catches
them, so the caller never sees a partially rewritten expression.
"""

__all__ = ['UnclassifiedNodeError', 'NonRepresentableRewriteError']


class UnclassifiedNodeError(NotImplementedError):
    """A traversal reached a node kind it has no rule for.

    Attributes:
        traversal: Name of the traversal that failed ('find', 'remove', ...)
        node: The offending node (None for table exhaustiveness failures)
    """

    def __init__(self, traversal, node=None, message=None):
        self.traversal = traversal
        self.node = node
        if message is None:
            message = (f"{traversal}: not implemented for "
                       f"{type(node).__name__} {node}")
        super().__init__(message)


class NonRepresentableRewriteError(ValueError):
    """Removing an exponent inside a product has no algebraic meaning."""

    def __init__(self, base, exponent):
        self.base = base
        self.exponent = exponent
        super().__init__(
            f"Removing the exponent {exponent} of {base} in a product is not allowed"
        )
