from polyrc.formats.base import (
    IFormatAdapter,
    RenderedFile,
    get_adapter,
    list_registered_formats,
)
from polyrc.formats.capabilities import CAPABILITIES, DialectCapabilities

__all__ = [
    "CAPABILITIES",
    "DialectCapabilities",
    "IFormatAdapter",
    "RenderedFile",
    "get_adapter",
    "list_registered_formats",
]
