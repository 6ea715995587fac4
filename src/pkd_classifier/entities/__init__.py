"""Domain entities for internal representation.

These are plain dataclasses and enums used internally by services
and handlers. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .process_mode import ProcessMode
from .process_result import ProcessResultEntity

__all__ = ["ProcessMode", "ProcessResultEntity"]
