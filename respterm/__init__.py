"""
respterm: Selective rewriting of response-theory expressions

Find, remove and keep tagged subexpressions (states, operators, energy
functionals) in SymPy expression trees, exactly and without evaluating the
algebra behind them.
"""

__version__ = "0.1.0"
__author__ = "respterm developers"
__license__ = "Apache-2.0"

# Import core functionality
from .exceptions import *
from .perturbation import *
from .symbols import *
from .config import *
from .kinds import *
from .matching import *
from .find import *
from .remove import *
from .zeros import *
from .keep import *

# Explicitly list main exports for clarity
__all__ = [
    # Faults
    'UnclassifiedNodeError', 'NonRepresentableRewriteError',

    # Perturbations
    'Perturbation', 'make_perturbation', 'perturbation_tuple',

    # Node taxonomy
    'NAO', 'ElectronicState', 'DensityMatrix', 'LagrangeMultiplier',
    'OneElectronOperator', 'TwoElectronOperator', 'TimeDerivativeOverlap',
    'ZeroOperator', 'ExchangeCorrelationPotential',
    'NonElectronicFunction', 'TwoElectronEnergy', 'CompositeFunction',
    'ExchangeCorrelationEnergy',
    'TimeDerivativeOperator', 'ConjugateMatrix', 'MatrixDerivative',
    'is_density_like', 'filter_derivatives',

    # Settings
    'Settings', 'settings', 'FUNCTIONAL_POLICIES',

    # Dispatch
    'NodeKind', 'classify', 'Traversal',
    'matches', 'equivalent', 'dependency_equivalent',

    # Traversals
    'FindEngine', 'find_all',
    'RemoveEngine', 'remove_if',
    'KeepEngine', 'keep_if',
    'ZeroCleaner', 'remove_zeros',
]
