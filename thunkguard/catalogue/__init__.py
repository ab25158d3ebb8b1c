# Catalogue package for thunkguard
"""
Adapter catalogue: which participation strategy checks which type.

DEFAULT_CATALOGUE carries the built-in adapters and everything registered
with the participation decorators when no catalogue is passed explicitly.
"""

from .builtins import install_builtins
from .registry import Catalogue

DEFAULT_CATALOGUE = Catalogue()
install_builtins(DEFAULT_CATALOGUE)
