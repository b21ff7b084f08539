import io
import logging
from dataclasses import dataclass

import pandas as pd

from datachat.core.errors import ParseError

logger = logging.getLogger("datachat.files")


@dataclass(frozen=True)
class TabularData:
    """Normalized table extracted from an uploaded file."""

    columns: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_mapping(self) -> dict[str, list[str]]:
        return {column: [row[index] for row in self.rows] for index, column in enumerate(self.columns)}

    def numeric_summary(self) -> dict[str, tuple[float, float]]:
        frame = pd.DataFrame(list(self.rows), columns=list(self.columns))
        summary = {}
        for column in self.columns:
            cells = frame[column][frame[column] != ""]
            values = pd.to_numeric(cells, errors="coerce")
            if cells.empty or values.isna().any():
                continue
            summary[column] = (float(values.min()), float(values.max()))
        return summary

    def to_prompt(self) -> str:
        frame = pd.DataFrame(list(self.rows), columns=list(self.columns))
        lines = [frame.to_csv(index=False, lineterminator="\n").rstrip("\n")]
        summary = self.numeric_summary()
        if summary:
            lines.append("")
            lines.append("Column summary:")
            for column, (low, high) in summary.items():
                lines.append(f"- {column}: min={low:g}, max={high:g}")
        return "\n".join(lines)


class FileProcessor:
    def process_bytes(self, raw: bytes) -> TabularData:
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("file is not valid UTF-8 text") from exc
        return self.process(text)

    def process(self, raw_content: str) -> TabularData:
        raw_content = raw_content.lstrip("\ufeff")
        if not raw_content.strip():
            raise ParseError("file is empty")

        try:
            frame = pd.read_csv(io.StringIO(raw_content), dtype=str, keep_default_na=False, skipinitialspace=True)
            columns = self._read_header(raw_content)
        except pd.errors.EmptyDataError as exc:
            raise ParseError("file has no columns") from exc
        except pd.errors.ParserError as exc:
            raise ParseError(f"malformed rows: {exc}") from exc

        if frame.empty:
            raise ParseError("file has a header but no data rows")
        # Data rows one field longer than the header make pandas use the first field as the index.
        if not isinstance(frame.index, pd.RangeIndex) or len(columns) != len(frame.columns):
            raise ParseError("rows have more fields than the header")
        if any(not column for column in columns):
            raise ParseError("header contains a blank column name")
        if len(set(columns)) != len(columns):
            raise ParseError("header contains duplicate column names")

        frame = frame.fillna("")
        rows = tuple(
            tuple(str(value).strip() for value in record)
            for record in frame.itertuples(index=False, name=None)
        )
        data = TabularData(columns=tuple(columns), rows=rows)
        logger.debug("Parsed table with %d columns and %d rows", len(columns), data.row_count)
        return data

    @staticmethod
    def _read_header(raw_content: str) -> list[str]:
        # pandas renames duplicate headers ("a", "a.1"), so read the header line as a plain row.
        header = pd.read_csv(io.StringIO(raw_content), header=None, nrows=1, dtype=str, keep_default_na=False)
        return [str(value).strip() for value in header.iloc[0].tolist()]
