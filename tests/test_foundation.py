"""
Foundation: test_foundation.py

configs/config.py:
  - SniffConfig defaults match the documented constants
  - TABSNIFF_* environment variables override defaults
  - Toggle variables are on when set to any value, even empty
  - structured is True only for the JSON output modes

configs/exceptions.py:
  - Every error is a SniffError with a title and detail
  - SourceIOError / InferenceError append their context in __str__
  - EmptyDatasetError defaults to "Empty file"

utils/validation.py:
  - Negative, NaN or infinite sample size raises InputError; zero and
    fractions pass
  - Delimiter aliases for tab; multi-char and non-ASCII delimiters rejected
  - validate_row_alignment raises SourceIOError on a ragged row

models/models.py:
  - SampleSource.size_basis falls back to retrieved_size
  - SniffResult rejects a non-positive count and sampled > count

utils/files.py:
  - release_store deletes a temporary store exactly once
  - release_store never touches a non-temporary store
  - save_copy creates parent folders
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tabsniff.configs.config import (
    DEFAULT_SAMPLE_SIZE,
    DEFAULT_TIMEOUT,
    MIN_SAMPLE_RECORDS,
    VERSION,
    SniffConfig,
)
from tabsniff.configs.exceptions import (
    EmptyDatasetError,
    InferenceError,
    InputError,
    SniffError,
    SourceIOError,
)
from tabsniff.models.models import DialectMetadata, FieldSpec, SampleSource, SniffResult
from tabsniff.utils.files import TEMP_PREFIX, new_temp_store, release_store, save_copy
from tabsniff.utils.validation import (
    normalize_delimiter,
    validate_row_alignment,
    validate_sample_size,
)


# ============================================================================
# Helpers
# ============================================================================

def make_dialect(**kwargs) -> DialectMetadata:
    defaults = dict(
        delimiter=",",
        quote='"',
        header_present=True,
        preamble_row_count=0,
        flexible=False,
        utf8_valid=True,
    )
    defaults.update(kwargs)
    return DialectMetadata(**defaults)


def make_result(**kwargs) -> SniffResult:
    defaults = dict(
        display_id="/data/x.csv",
        timestamp="2026-01-01T00:00:00+00:00",
        retrieved_size=100,
        total_size=100,
        dialect=make_dialect(),
        schema=(FieldSpec("a", "Integer"), FieldSpec("b", "Text")),
        sampled_records=2,
        record_count=2,
        estimated=False,
        avg_record_len=10,
    )
    defaults.update(kwargs)
    return SniffResult(**defaults)


# ============================================================================
# SniffConfig
# ============================================================================

class TestSniffConfig:
    def test_defaults(self):
        cfg = SniffConfig()
        assert cfg.sample_size == DEFAULT_SAMPLE_SIZE
        assert cfg.timeout == DEFAULT_TIMEOUT
        assert cfg.delimiter is None
        assert cfg.prefer_dmy is False
        assert cfg.progressbar is False
        assert cfg.output == "text"
        assert cfg.save_urlsample is None
        assert cfg.user_agent == f"tabsniff/{VERSION}"

    def test_min_sample_floor_constant(self):
        assert MIN_SAMPLE_RECORDS == 20

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TABSNIFF_SAMPLE", "0.25")
        monkeypatch.setenv("TABSNIFF_TIMEOUT", "5")
        monkeypatch.setenv("TABSNIFF_DELIMITER", ";")
        monkeypatch.setenv("TABSNIFF_USER_AGENT", "tabsniff-test/1.0")
        cfg = SniffConfig()
        assert cfg.sample_size == 0.25
        assert cfg.timeout == 5
        assert cfg.delimiter == ";"
        assert cfg.user_agent == "tabsniff-test/1.0"

    def test_toggle_on_when_set_to_empty_string(self, monkeypatch):
        monkeypatch.setenv("TABSNIFF_PREFER_DMY", "")
        monkeypatch.setenv("TABSNIFF_PROGRESSBAR", "0")
        cfg = SniffConfig()
        assert cfg.prefer_dmy is True
        assert cfg.progressbar is True

    def test_explicit_values_beat_env(self, monkeypatch):
        monkeypatch.setenv("TABSNIFF_SAMPLE", "50")
        assert SniffConfig(sample_size=0).sample_size == 0

    @pytest.mark.parametrize("mode,expected", [
        ("text", False),
        ("json", True),
        ("pretty-json", True),
    ])
    def test_structured(self, mode, expected):
        assert SniffConfig(output=mode).structured is expected


# ============================================================================
# Exceptions
# ============================================================================

class TestExceptions:
    @pytest.mark.parametrize("exc_class", [
        InputError, SourceIOError, InferenceError, EmptyDatasetError,
    ])
    def test_all_are_sniff_errors(self, exc_class):
        assert issubclass(exc_class, SniffError)

    def test_default_title(self):
        err = InputError("bad", parameter="sample")
        assert err.title == "sniff error"
        assert err.detail == "bad"
        assert err.parameter == "sample"

    def test_title_override(self):
        err = SourceIOError("boom", title="count rows error")
        assert err.title == "count rows error"
        assert SourceIOError("other").title == "sniff error"

    def test_source_in_str(self):
        err = SourceIOError("Cannot open", source="/tmp/x.csv")
        assert str(err) == "Cannot open | source=/tmp/x.csv"
        assert err.detail == str(err)

    def test_records_in_str(self):
        assert str(InferenceError("No dialect", records=7)) == "No dialect | records=7"
        assert str(InferenceError("No dialect")) == "No dialect"

    def test_empty_dataset_default_message(self):
        err = EmptyDatasetError(record_count=0)
        assert str(err) == "Empty file"
        assert err.record_count == 0


# ============================================================================
# Validation
# ============================================================================

class TestValidation:
    @pytest.mark.parametrize("value", [0, 0.5, 1, 1000])
    def test_sample_size_accepts(self, value):
        validate_sample_size(value)

    def test_negative_sample_rejected(self):
        with pytest.raises(InputError, match="greater than or equal to zero"):
            validate_sample_size(-1)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_sample_rejected(self, value):
        with pytest.raises(InputError, match="finite number") as exc_info:
            validate_sample_size(value)
        assert exc_info.value.parameter == "sample"

    @pytest.mark.parametrize("raw", ["\\t", "tab", "\t"])
    def test_tab_aliases(self, raw):
        assert normalize_delimiter(raw) == "\t"

    def test_single_char_passes(self):
        assert normalize_delimiter(";") == ";"
        assert normalize_delimiter(None) is None

    @pytest.mark.parametrize("raw", ["ab", "", "é"])
    def test_bad_delimiters(self, raw):
        with pytest.raises(InputError) as exc_info:
            normalize_delimiter(raw)
        assert exc_info.value.parameter == "delimiter"

    def test_row_alignment(self):
        validate_row_alignment(["a", "b"], expected_field_count=2, row_number=1)
        with pytest.raises(SourceIOError, match="Row 3 has 1 fields, expected 2"):
            validate_row_alignment(["a"], expected_field_count=2, row_number=3, source_path="f.csv")


# ============================================================================
# Models
# ============================================================================

class TestModels:
    def test_size_basis_known(self):
        src = SampleSource("remote", "u", Path("x"), retrieved_size=10, total_size=500)
        assert src.size_basis == 500

    def test_size_basis_unknown(self):
        src = SampleSource("remote", "u", Path("x"), retrieved_size=10, total_size=None)
        assert src.size_basis == 10

    def test_result_properties(self):
        result = make_result()
        assert result.num_fields == 2
        assert result.field_names == ["a", "b"]
        assert result.field_types == ["Integer", "Text"]

    def test_result_rejects_zero_count(self):
        with pytest.raises(ValueError):
            make_result(record_count=0, sampled_records=0)

    def test_result_rejects_oversampling(self):
        with pytest.raises(ValueError):
            make_result(record_count=2, sampled_records=3)


# ============================================================================
# Temporary stores
# ============================================================================

class TestFiles:
    def test_new_temp_store(self):
        store = new_temp_store()
        try:
            assert store.exists()
            assert store.name.startswith(TEMP_PREFIX)
            assert store.suffix == ".csv"
        finally:
            store.unlink()

    def test_release_is_idempotent(self):
        store = new_temp_store()
        src = SampleSource("stdin", "stdin", store, 0, 0, is_temporary=True)
        assert release_store(src) is True
        assert not store.exists()
        assert src.released is True
        assert release_store(src) is False

    def test_release_leaves_local_files(self, tmp_path):
        path = tmp_path / "keep.csv"
        path.write_text("a,b\n")
        src = SampleSource("local", str(path), path, 4, 4, is_temporary=False)
        assert release_store(src) is False
        assert path.exists()

    def test_release_none(self):
        assert release_store(None) is False

    def test_save_copy_creates_parents(self, tmp_path):
        src = tmp_path / "in.csv"
        src.write_text("a\n1\n")
        dest = save_copy(src, tmp_path / "nested" / "dir" / "out.csv")
        assert dest.read_text() == "a\n1\n"

    def test_save_copy_missing_source(self, tmp_path):
        with pytest.raises(SourceIOError):
            save_copy(tmp_path / "nope.csv", tmp_path / "out.csv")
