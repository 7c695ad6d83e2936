from .combiner import combine_scores
from .ingestion import ImageArtifact, decode_image, try_decode_secondary
from .results import ScanResult
from .scanner import DocumentScanner
from .settings import ScannerSettings, load_settings

__all__ = [
    "DocumentScanner",
    "ImageArtifact",
    "ScanResult",
    "ScannerSettings",
    "combine_scores",
    "decode_image",
    "load_settings",
    "try_decode_secondary",
]
