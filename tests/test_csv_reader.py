"""
CSV reader configuration: test_csv_reader.py

discovery/csv_reader.py:
  - UTF-8 with and without BOM detected as utf-8-sig; BOM never reaches cells
  - Non-UTF-8 input reported as not utf8_valid with a usable encoding
  - count_rows treats the first row as a header
  - count_rows counts a quoted line break as one record
  - Empty file counts 0 rows
  - Blank lines are skipped by every reader and never counted
  - The metered reader reports the raw bytes behind the rows read so far
  - Byte sizes ignore the BOM; record lengths round to the nearest byte
  - Strict reader raises SourceIOError on a ragged row; flexible reader does not
  - open_writer quotes every field by default
  - CSVConfig satisfies the TabularConfig protocol

configs/csv_dialect.py:
  - build_dialect without a quote disables quote handling
  - register_dialect is idempotent
"""

from __future__ import annotations

import codecs
import csv
from pathlib import Path

import pytest

from tabsniff.configs.csv_dialect import SAMPLE_DIALECT_NAME, build_dialect, register_dialect
from tabsniff.configs.exceptions import SourceIOError
from tabsniff.discovery.base import TabularConfig
from tabsniff.discovery.csv_reader import (
    CSVConfig,
    average_record_len,
    detect_encoding,
    encoded_size,
)


# ============================================================================
# Helpers
# ============================================================================

def write_bytes(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path


# ============================================================================
# Encoding detection
# ============================================================================

class TestDetectEncoding:
    def test_plain_utf8(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", "name\ncafé\n".encode("utf-8"))
        assert detect_encoding(path) == ("utf-8-sig", True)

    def test_bom_stripped(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", codecs.BOM_UTF8 + b"id,name\n1,x\n")
        conf = CSVConfig(path)
        with conf.open_reader() as rows:
            header = next(rows)
        assert header == ["id", "name"]
        assert conf.utf8_valid is True

    def test_latin1(self, tmp_path):
        data = "name,city\nJosé,Málaga\nFrançois,Besançon\n".encode("latin-1")
        path = write_bytes(tmp_path / "a.csv", data)
        encoding, utf8_valid = detect_encoding(path)
        assert utf8_valid is False
        codecs.lookup(encoding)  # must be a real codec

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceIOError):
            detect_encoding(tmp_path / "missing.csv")


# ============================================================================
# CSVConfig
# ============================================================================

class TestCSVConfig:
    def test_protocol(self, tmp_path):
        assert isinstance(CSVConfig(tmp_path / "x.csv"), TabularConfig)

    def test_default_delimiter(self, tmp_path):
        assert CSVConfig(tmp_path / "x.csv").delimiter == ","

    def test_count_rows(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n1,2\n3,4\n")
        assert CSVConfig(path).count_rows() == 2

    def test_count_rows_crlf(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\r\n1,2\r\n3,4\r\n")
        assert CSVConfig(path).count_rows() == 2

    def test_count_rows_quoted_newline(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b'id,note\n1,"line one\nline two"\n2,plain\n')
        assert CSVConfig(path).count_rows() == 2

    def test_count_rows_empty(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"")
        assert CSVConfig(path).count_rows() == 0

    def test_count_rows_header_only(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n")
        assert CSVConfig(path).count_rows() == 0

    def test_count_rows_missing_file(self, tmp_path):
        conf = CSVConfig(tmp_path / "gone.csv", encoding="utf-8")
        with pytest.raises(SourceIOError) as exc_info:
            conf.count_rows()
        assert exc_info.value.title == "count rows error"

    def test_count_rows_skips_blank_lines(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n1,2\n\n3,4\n\n")
        assert CSVConfig(path).count_rows() == 2

    def test_count_rows_leading_blank_line(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"\r\na,b\r\n1,2\r\n")
        assert CSVConfig(path).count_rows() == 1

    def test_strict_reader_ignores_blank_lines(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n\n1,2\n")
        with CSVConfig(path).open_reader(flexible=False) as rows:
            assert list(rows) == [["a", "b"], ["1", "2"]]

    def test_metered_reader_counts_raw_bytes(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n\"1\",\"x\"\n\n3,4\n")
        with CSVConfig(path).open_metered_reader() as (rows, meter):
            assert next(rows) == ["a", "b"]
            assert meter.nbytes == 4
            assert next(rows) == ["1", "x"]
            assert meter.nbytes == 12
            assert next(rows) == ["3", "4"]
            assert meter.nbytes == 17

    def test_semicolon_reader(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a;b\n1;2\n")
        with CSVConfig(path, delimiter=";").open_reader() as rows:
            assert list(rows) == [["a", "b"], ["1", "2"]]

    def test_no_quote_keeps_quote_chars(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b'a,b\n"1",2\n')
        with CSVConfig(path, quote=None).open_reader() as rows:
            assert list(rows)[1] == ['"1"', "2"]

    def test_strict_reader_rejects_ragged_row(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n1,2\n3\n")
        with pytest.raises(SourceIOError, match="Row 3 has 1 fields"):
            with CSVConfig(path).open_reader(flexible=False) as rows:
                list(rows)

    def test_flexible_reader_accepts_ragged_row(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a,b\n1,2\n3\n")
        with CSVConfig(path).open_reader(flexible=True) as rows:
            assert len(list(rows)) == 3

    def test_reader_can_be_reopened(self, tmp_path):
        path = write_bytes(tmp_path / "a.csv", b"a\n1\n")
        conf = CSVConfig(path)
        with conf.open_reader() as rows:
            first = list(rows)
        with conf.open_reader() as rows:
            assert list(rows) == first

    def test_writer_quotes_everything(self, tmp_path):
        path = tmp_path / "out.csv"
        with CSVConfig(path).open_writer() as writer:
            writer.writerow(["a", "b"])
            writer.writerow(["1", "x,y"])
        assert path.read_bytes() == b'"a","b"\n"1","x,y"\n'

    def test_writer_honours_delimiter(self, tmp_path):
        path = tmp_path / "out.tsv"
        with CSVConfig(path, delimiter="\t").open_writer() as writer:
            writer.writerow(["a", "b"])
        assert path.read_bytes() == b'"a"\t"b"\n'


# ============================================================================
# Dialects
# ============================================================================

class TestDialects:
    def test_build_dialect_quote_none(self):
        dialect = build_dialect(",", None)
        assert dialect.quoting == csv.QUOTE_NONE
        assert dialect.delimiter == ","

    def test_build_dialect_with_quote(self):
        dialect = build_dialect("|", "'")
        assert dialect.quoting == csv.QUOTE_MINIMAL
        assert dialect.quotechar == "'"

    def test_register_twice(self):
        register_dialect()
        register_dialect()
        assert SAMPLE_DIALECT_NAME in csv.list_dialects()
        assert csv.get_dialect(SAMPLE_DIALECT_NAME).quoting == csv.QUOTE_ALL


# ============================================================================
# Byte sizes
# ============================================================================

class TestByteSizes:
    def test_encoded_size_ignores_bom_encoding(self):
        assert encoded_size("é,1\n", "utf-8-sig") == 5

    def test_encoded_size_single_byte(self):
        assert encoded_size("é,1\n", "latin-1") == 4

    @pytest.mark.parametrize("nbytes,records,expected", [
        (604, 101, 6),
        (12, 3, 4),
        (5, 10, 1),
        (0, 0, 1),
    ])
    def test_average_record_len(self, nbytes, records, expected):
        assert average_record_len(nbytes, records) == expected
