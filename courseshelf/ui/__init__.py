"""Terminal front-ends for the course catalog."""

from .console import ConsoleUI
from .modern import ModernUI

__all__ = ["ConsoleUI", "ModernUI"]
