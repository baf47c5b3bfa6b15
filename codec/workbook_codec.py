"""
WorkbookCodec — bytes ⇄ ``WorkbookModel``.

Decoding is format-agnostic: the content type libmagic reports decides
whether the input is an Office Open XML workbook (openpyxl), a legacy BIFF
workbook (xlrd) or delimited text (csv + chardet).  File names are only
used in log and error messages.

Encoding supports two targets:
  - ``TargetFormat.XLSX``: every sheet, values and formulas with their
    cached results (XlsxWriter);
  - ``TargetFormat.CSV``: the first sheet only, values only, UTF-8 with
    a byte-order mark so spreadsheet applications pick the right encoding.
"""

from __future__ import annotations

import codecs
import csv
import datetime as _dt
import io
import logging
import re
from typing import Any, Dict, Optional

import chardet
import openpyxl
import xlrd
import xlsxwriter
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.datetime import to_excel
from xlsxwriter.exceptions import XlsxWriterException
from xlsxwriter.utility import xl_cell_to_rowcol

from codec.cell_reader import read_openpyxl_sheet, read_xlrd_sheet, coord
from codec.formats import SourceFormat, TargetFormat, detect_source_format
from dto.workbook import CellModel, SheetModel, WorkbookModel
from utils.exceptions import FormatError

logger = logging.getLogger(__name__)

# Name given to the single sheet of a delimited-text file.
TEXT_SHEET_NAME = "Sheet1"

_CSV_DELIMITERS = ",;\t|"
_SNIFF_SAMPLE_CHARS = 64_000

# Minimum chardet confidence before its guess is trusted.
_MIN_ENCODING_CONFIDENCE = 0.7
_FALLBACK_ENCODINGS = ("cp1252", "latin-1")

_XLSX_OPTIONS = {
    "in_memory": True,
    "strings_to_formulas": False,
    "strings_to_numbers": False,
    "strings_to_urls": False,
    "nan_inf_to_errors": True,
}

# Number formats that make readers treat the serial back as a date.
_DATE_NUM_FORMATS = {
    "datetime": "yyyy-mm-dd hh:mm:ss",
    "date": "yyyy-mm-dd",
    "time": "hh:mm:ss",
}

# Integers and decimals without leading zeros ("007" stays text).
_NUMBER_RE = re.compile(r"^-?(?:0|[1-9]\d*)(?:\.\d+)?$")


class WorkbookCodec:
    """
    Usage::

        codec = WorkbookCodec()
        model = codec.decode(raw_bytes, hint="report.xlsx")
        csv_bytes = codec.encode(model, TargetFormat.CSV)
    """

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, data: bytes, hint: Optional[str] = None) -> WorkbookModel:
        """Parse *data* into a ``WorkbookModel`` or raise ``FormatError``."""
        source = detect_source_format(data)
        logger.info(
            "Decoding %s (%d bytes) as %s", hint or "<bytes>", len(data), source.value
        )

        if source is SourceFormat.XLSX:
            model = self._decode_xlsx(data, hint)
        elif source is SourceFormat.XLS:
            model = self._decode_xls(data, hint)
        else:
            model = self._decode_text(data, hint)

        logger.info(
            "  -> %d sheet(s), %d cell(s)",
            len(model.sheets),
            sum(len(s.cells) for s in model.sheets),
        )
        return model

    @staticmethod
    def _decode_xlsx(data: bytes, hint: Optional[str]) -> WorkbookModel:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(data), data_only=False)
            wb_cached = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
        except Exception as exc:
            logger.warning("Failed to open %s as a workbook", hint or "<bytes>", exc_info=True)
            raise FormatError(
                f"Not a readable .xlsx workbook: {exc}",
                user_message="The workbook could not be read. Please check that it is a valid .xlsx file.",
            ) from exc

        try:
            # Chart sheets carry no cells; only real worksheets are read.
            sheets = [
                read_openpyxl_sheet(
                    ws,
                    wb_cached[ws.title] if ws.title in wb_cached.sheetnames else None,
                )
                for ws in wb.worksheets
            ]
        finally:
            wb.close()
            wb_cached.close()
        return WorkbookModel(sheets=sheets)

    @staticmethod
    def _decode_xls(data: bytes, hint: Optional[str]) -> WorkbookModel:
        try:
            book = xlrd.open_workbook(file_contents=data)
        except Exception as exc:
            logger.warning("Failed to open %s as a legacy workbook", hint or "<bytes>", exc_info=True)
            raise FormatError(
                f"Not a readable .xls workbook: {exc}",
                user_message="The workbook could not be read. Please check that it is a valid .xls file.",
            ) from exc

        logger.info("  Legacy .xls input: formula text is not available, values only")
        sheets = [read_xlrd_sheet(book, book.sheet_by_index(i)) for i in range(book.nsheets)]
        return WorkbookModel(sheets=sheets)

    def _decode_text(self, data: bytes, hint: Optional[str]) -> WorkbookModel:
        text = self._decode_bytes(data, hint)
        delimiter = self._sniff_delimiter(text)

        sheet = SheetModel(name=TEXT_SHEET_NAME)
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        try:
            for r, row in enumerate(reader, start=1):
                for c, raw in enumerate(row, start=1):
                    if raw == "":
                        continue
                    sheet.set_cell(coord(c, r), value=_parse_text_value(raw))
        except csv.Error as exc:
            raise FormatError(
                f"Malformed delimited text: {exc}",
                user_message="The CSV file could not be read. Please check its format.",
            ) from exc
        return WorkbookModel(sheets=[sheet])

    @staticmethod
    def _decode_bytes(data: bytes, hint: Optional[str]) -> str:
        """Decode text bytes, honouring byte-order marks and guessing otherwise."""
        if data.startswith(codecs.BOM_UTF8):
            encoding = "utf-8-sig"
        elif data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            encoding = "utf-16"
        elif b"\x00" in data:
            raise FormatError(
                f"{hint or '<bytes>'} looks binary",
                user_message="Unsupported file format. Please upload an .xlsx, .xls or .csv file.",
            )
        else:
            try:
                return data.decode("utf-8")
            except UnicodeDecodeError:
                encoding = _detect_encoding(data)

        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise FormatError(
                f"Could not decode text as {encoding}: {exc}",
                user_message="The file's text encoding could not be recognised.",
            ) from exc

    @staticmethod
    def _sniff_delimiter(text: str) -> str:
        sample = text[:_SNIFF_SAMPLE_CHARS]
        try:
            return csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS).delimiter
        except csv.Error:
            return ","

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, model: WorkbookModel, target_format: TargetFormat) -> bytes:
        target_format = TargetFormat(target_format)
        if target_format is TargetFormat.XLSX:
            return self._encode_xlsx(model)
        return self._encode_csv(model)

    @staticmethod
    def _encode_xlsx(model: WorkbookModel) -> bytes:
        """
        Write every sheet with XlsxWriter.  Formula cells carry their
        cached value so a reader sees the same result without recalculating.
        """
        buf = io.BytesIO()
        wb = xlsxwriter.Workbook(buf, _XLSX_OPTIONS)
        date_formats = {
            kind: wb.add_format({"num_format": num_format})
            for kind, num_format in _DATE_NUM_FORMATS.items()
        }

        try:
            for sheet in model.sheets:
                _write_sheet(wb.add_worksheet(sheet.name), sheet, date_formats)
            if not model.sheets:
                wb.add_worksheet(TEXT_SHEET_NAME)
            wb.close()
        except XlsxWriterException as exc:
            logger.warning("Failed to write workbook", exc_info=True)
            raise FormatError(
                f"Could not write .xlsx: {exc}",
                user_message="The workbook could not be written. Please check its sheet names.",
            ) from exc
        return buf.getvalue()

    @staticmethod
    def _encode_csv(model: WorkbookModel) -> bytes:
        sheet = model.first_sheet
        if len(model.sheets) > 1:
            logger.warning(
                "CSV export keeps only the first sheet '%s'; dropping %s",
                sheet.name,
                model.sheet_names[1:],
            )

        buf = io.StringIO(newline="")
        writer = csv.writer(buf, lineterminator="\r\n")
        if sheet is not None:
            for row in sheet.rows():
                fields = [_csv_text(cell) for cell in row]
                # csv quotes a lone empty field; a blank line reads back the same.
                writer.writerow([] if fields == [""] else fields)
        return buf.getvalue().encode("utf-8-sig")


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _write_sheet(ws, sheet: SheetModel, date_formats: Dict[str, Any]) -> None:
    """
    Array formulas go first: XlsxWriter pads the rest of their range with
    zeros, and any cell the model holds inside that range must win.
    """
    cells = list(sheet.iter_cells())
    for address, cell in cells:
        if cell.has_formula and cell.array_range:
            first, _, last = cell.array_range.partition(":")
            first_row, first_col = xl_cell_to_rowcol(first)
            last_row, last_col = xl_cell_to_rowcol(last or first)
            ws.write_array_formula(
                first_row,
                first_col,
                last_row,
                last_col,
                cell.display_formula,
                date_formats.get(_date_kind(cell.value)),
                _array_result(cell.value),
            )

    for address, cell in cells:
        row, col = xl_cell_to_rowcol(address)
        if cell.has_formula:
            if not cell.array_range:
                ws.write_formula(
                    row,
                    col,
                    cell.display_formula,
                    date_formats.get(_date_kind(cell.value)),
                    _formula_result(cell.value),
                )
        else:
            _write_value(ws, row, col, cell.value, date_formats)


def _write_value(ws, row: int, col: int, value: Any, date_formats: Dict[str, Any]) -> None:
    if value is None:
        return
    kind = _date_kind(value)
    if isinstance(value, bool):
        ws.write_boolean(row, col, value)
    elif isinstance(value, (int, float)):
        ws.write_number(row, col, value)
    elif kind is not None:
        ws.write_datetime(row, col, value, date_formats[kind])
    else:
        # Text that starts with "=" stays text: write_string never parses it.
        ws.write_string(row, col, _xml_safe(str(value)))


def _date_kind(value: Any) -> Optional[str]:
    if isinstance(value, _dt.datetime):
        return "datetime"
    if isinstance(value, _dt.date):
        return "date"
    if isinstance(value, _dt.time):
        return "time"
    return None


def _formula_result(value: Any) -> Any:
    """The cached result in the form XlsxWriter stores next to a formula."""
    if value is None:
        # Empty result; readers see no cached value.
        return ""
    if isinstance(value, (bool, int, float)):
        return value
    if _date_kind(value) is not None:
        return to_excel(value)
    return _xml_safe(str(value))


def _array_result(value: Any) -> Any:
    # Array cells write the result verbatim, so booleans need their numeric form.
    if isinstance(value, bool):
        return int(value)
    return _formula_result(value)


def _xml_safe(text: str) -> str:
    cleaned = ILLEGAL_CHARACTERS_RE.sub("", text)
    if cleaned != text:
        logger.debug("Dropped %d control character(s) from a cell", len(text) - len(cleaned))
    return cleaned


def _detect_encoding(data: bytes) -> str:
    result = chardet.detect(data)
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    if encoding and confidence >= _MIN_ENCODING_CONFIDENCE:
        logger.debug("Detected encoding: %s (confidence: %.2f)", encoding, confidence)
        return encoding

    for fallback in _FALLBACK_ENCODINGS:
        try:
            data.decode(fallback)
        except UnicodeDecodeError:
            continue
        logger.debug("Using fallback encoding: %s", fallback)
        return fallback
    return "latin-1"


def _parse_text_value(raw: str) -> Any:
    """Type a delimited-text field the way spreadsheet apps do on import."""
    if _NUMBER_RE.match(raw):
        return float(raw) if "." in raw else int(raw)
    upper = raw.upper()
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    return raw


def _csv_text(cell: Optional[CellModel]) -> str:
    """Flatten a cell to its CSV text; formulas collapse to their cached value."""
    if cell is None or cell.value is None:
        return ""
    value = cell.value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, _dt.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (_dt.date, _dt.time)):
        return value.isoformat()
    return str(value)
