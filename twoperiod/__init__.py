from .core import *
from .core import _log

__version__ = "0.1.0"
