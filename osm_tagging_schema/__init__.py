"""OSM tagging schema MCP server package."""

from .config import Config, load_config
from .logging import configure_logging
from .schema import SchemaIndex, SchemaLoader
from .server import SERVER, main
from .tag_parser import parse_tag_input

__all__ = [
    "Config",
    "load_config",
    "configure_logging",
    "SchemaIndex",
    "SchemaLoader",
    "parse_tag_input",
    "SERVER",
    "main",
]
