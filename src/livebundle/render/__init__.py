from .mapper import Location, locate, relativize_error
from .markers import Boundary, parse_boundary, wrap_content

__all__ = [
    "Boundary",
    "Location",
    "locate",
    "parse_boundary",
    "relativize_error",
    "wrap_content",
]
