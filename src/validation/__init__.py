"""Split validation package."""

from src.validation.validator import SplitValidator

__all__ = ["SplitValidator"]
