"""Read-only selectors over the movements source."""

from report_kernel.selectors.base import BaseSelector
from report_kernel.selectors.movement_selector import MovementSelector

__all__ = ["BaseSelector", "MovementSelector"]
