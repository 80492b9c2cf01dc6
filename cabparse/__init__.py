"""cabparse: parsing and broken-logic diagnostics for CAD/cabinet design files."""

from .config import ParserConfig, load_config
from .detector import detect_format
from .engine import ParseEngine, parse
from .errors import CabParseError, DecodeError, ParsingError, StructuralWarning
from .models import Dialect, ParseResult

__version__ = "0.3.0"

__all__ = [
    "CabParseError",
    "DecodeError",
    "Dialect",
    "ParseEngine",
    "ParseResult",
    "ParserConfig",
    "ParsingError",
    "StructuralWarning",
    "detect_format",
    "load_config",
    "parse",
]
