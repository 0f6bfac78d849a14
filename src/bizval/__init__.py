"""Business fair-value engine: reconciliation, comparables, DCF and sensitivity."""

__version__ = "0.1.0"

from bizval.aggregation import aggregate  # noqa: E402
from bizval.comparables import compare_to_comparables  # noqa: E402
from bizval.dcf import project_dcf  # noqa: E402
from bizval.engine import ValuationEngine  # noqa: E402
from bizval.sensitivity import sensitivity_grid  # noqa: E402

__all__ = [
    "ValuationEngine",
    "__version__",
    "aggregate",
    "compare_to_comparables",
    "project_dcf",
    "sensitivity_grid",
]
