# thunkguard
# Point-in-time detection of retained deferred computation

"""
Checks a value's live representation, field by field, for deferred cells
that should have been realized, and reports the first one found together
with the trail of type names leading to it.
"""

from .api import assert_realized, check, check_in
from .catalogue import DEFAULT_CATALOGUE, Catalogue
from .cells import Apply, Select, Thunk, force, lazy, ready
from .classifier import Classification, classify
from .context import Context
from .deep import is_normal_form
from .modes import (
    allow_thunk,
    allow_thunks_in,
    check_elements,
    check_whnf,
    derive,
    use_normal_form,
)
from .violation import (
    CatalogueError,
    ClassificationError,
    ExemptionError,
    UnexpectedDeferred,
    UnreachableAlternative,
    Violation,
)
