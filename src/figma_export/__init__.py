"""Export Figma node images and hierarchies with a rate-limit friendly cache."""

from figma_export.api import FigmaApi, RetryPolicy
from figma_export.cache import ResponseCache
from figma_export.core.export.exporter import ImageExporter
from figma_export.protocols import ApiProtocol, WriterProtocol
from figma_export.writer import ImageWriter

__all__ = [
    "ApiProtocol",
    "FigmaApi",
    "ImageExporter",
    "ImageWriter",
    "ResponseCache",
    "RetryPolicy",
    "WriterProtocol",
]
