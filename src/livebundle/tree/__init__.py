from .chunks import Chunk, stringify
from .node import EVENTS, LiveNode
from .scan import IncludePointer, ScanResult, scan_directives

__all__ = [
    "Chunk",
    "EVENTS",
    "IncludePointer",
    "LiveNode",
    "ScanResult",
    "scan_directives",
    "stringify",
]
