from pathlib import Path

import ingestion.csv_file as csv_file
import ingestion.json_file as json_file
import ingestion.pdf_file as pdf_file
import ingestion.xlsx_file as xlsx_file
from ingestion.base import ParseResult, UnsupportedFormatError

_INGESTION_MODULES = {
    "csv": csv_file,
    "json": json_file,
    "pdf": pdf_file,
    "xlsx": xlsx_file,
}

__all__ = [
    "ParseResult",
    "UnsupportedFormatError",
    "get_ingestion_module",
    "get_available_modules",
    "module_for_filename",
]


def get_ingestion_module(module_name: str):
    """Get an ingestion module by name."""
    if module_name not in _INGESTION_MODULES:
        raise UnsupportedFormatError(f"Unknown ingestion module: {module_name}")
    return _INGESTION_MODULES[module_name]


def get_available_modules():
    """Get list of available ingestion modules."""
    return list(_INGESTION_MODULES.keys())


def module_for_filename(filename) -> str:
    """Pick the ingestion module name from a file extension."""
    suffix = Path(filename).suffix.lower().lstrip(".")
    if suffix not in _INGESTION_MODULES:
        raise UnsupportedFormatError(
            f"Unsupported file type '.{suffix}'. "
            f"Supported: {', '.join(get_available_modules())}"
        )
    return suffix
