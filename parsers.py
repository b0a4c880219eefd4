import io
import logging
import os
from typing import List, Dict, Any

import pandas as pd

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx",)


class FileParseError(ValueError):
    """The uploaded file could not be turned into rows."""


class UnsupportedFileTypeError(FileParseError):
    pass


class EmptyFileError(FileParseError):
    pass


def _clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = [str(col).strip() for col in df.columns]
    # columns without a header cell come back as "Unnamed: <n>"
    df = df.loc[:, [bool(col) and not col.startswith("Unnamed:") for col in df.columns]]
    df = df.dropna(how="all")
    return df.fillna("")


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return _clean_frame(df).to_dict(orient="records")


def parse_csv(content: bytes) -> List[Dict[str, Any]]:
    """Every cell is kept as text; blank cells become ""."""
    df = pd.read_csv(
        io.BytesIO(content),
        dtype=str,
        keep_default_na=False,
        na_values=[""],
        skip_blank_lines=True,
        encoding="utf-8-sig",
    )
    return _records(df)


def parse_excel(content: bytes) -> List[Dict[str, Any]]:
    """First sheet only; numbers and dates keep their native type."""
    df = pd.read_excel(
        io.BytesIO(content),
        sheet_name=0,
        keep_default_na=False,
        na_values=[""],
    )
    return _records(df)


def parse_file(filename: str, content: bytes) -> List[Dict[str, Any]]:
    extension = os.path.splitext(filename or "")[1].lower()
    if extension in CSV_EXTENSIONS:
        parser = parse_csv
    elif extension in EXCEL_EXTENSIONS:
        parser = parse_excel
    else:
        raise UnsupportedFileTypeError(f"Unsupported file type: {filename}")

    try:
        rows = parser(content)
    except pd.errors.EmptyDataError:
        rows = []
    except Exception as e:
        raise FileParseError(f"Could not read {filename}: {e}") from e

    if not rows:
        raise EmptyFileError(f"No data found in file: {filename}")

    logger.info("Parsed %d rows from %s", len(rows), filename)
    return rows
