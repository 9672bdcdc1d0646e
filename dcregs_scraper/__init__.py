from .extract import Extractor, extract_regulations
from .models import ExtractorConfig, RawMatch, RegulationRecord
from .scraper import DCRegsScraper
from . import normalize  # re-export module for convenience in tests and users

__all__ = [
    "DCRegsScraper",
    "Extractor",
    "ExtractorConfig",
    "RawMatch",
    "RegulationRecord",
    "extract_regulations",
    "normalize",
]
__version__ = "0.1.0"
