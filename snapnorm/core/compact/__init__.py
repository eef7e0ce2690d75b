from .budget import compact_to_budget, next_parameters
from .externalize import ext_for_mime, externalize_images
from .pipeline import apply_strip_filters, compact_file, compact_text
from .recompress import RecompressionCache, ScanStats, is_vector, recompress_bytes, recompress_document
from .scanner import EmbeddedResource, scan_data_uris, scan_embedded_images
from .strip import strip_data_srcset, strip_fonts, strip_large_styles, strip_scripts, strip_tracking_iframes

__all__ = [
    "EmbeddedResource",
    "scan_data_uris",
    "scan_embedded_images",
    "RecompressionCache",
    "ScanStats",
    "is_vector",
    "recompress_bytes",
    "recompress_document",
    "compact_to_budget",
    "next_parameters",
    "ext_for_mime",
    "externalize_images",
    "strip_fonts",
    "strip_scripts",
    "strip_large_styles",
    "strip_tracking_iframes",
    "strip_data_srcset",
    "apply_strip_filters",
    "compact_text",
    "compact_file",
]
