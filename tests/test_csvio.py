"""Tests for tidyshape.csvio and tidyshape.config."""

import csv

import pytest

from tidyshape.config import Config, ReadOptions, WriteOptions, clear_cache, load_config
from tidyshape.csvio import read_csv, write_csv
from tidyshape.table import table_new, table_to_dict


@pytest.fixture(autouse=True)
def _clear_config_cache():
    yield
    clear_cache()


@pytest.fixture
def interviews_csv(tmp_path):
    path = tmp_path / "interviews.csv"
    path.write_text(
        "key_ID,village,no_membrs,memb_assoc,items_owned\n"
        "1,God,3,true,bicycle;radio\n"
        "2,Chirodzo,NA,false,NA\n"
        "3,,7,NA,NULL\n"
    )
    return path


def _read_raw(path, delimiter=","):
    with open(path, newline="") as f:
        return list(csv.reader(f, delimiter=delimiter))


class TestReadCsv:
    """Tests for read_csv."""

    def test_types_and_missing(self, interviews_csv):
        table = read_csv(interviews_csv)
        assert table["orientation"] == "column"
        assert table_to_dict(table) == {
            "key_ID": [1, 2, 3],
            "village": ["God", "Chirodzo", None],
            "no_membrs": [3, None, 7],
            "memb_assoc": [True, False, None],
            "items_owned": ["bicycle;radio", None, "NULL"],
        }

    def test_custom_missing_token(self, interviews_csv):
        """With a custom token, NA is ordinary text."""
        table = read_csv(interviews_csv, missing_value_token="NULL")
        assert table_to_dict(table)["items_owned"] == ["bicycle;radio", "NA", None]

    def test_column_type_override(self, interviews_csv):
        options = ReadOptions(column_types={"key_ID": "text", "no_membrs": "numeric"})
        table = table_to_dict(read_csv(interviews_csv, options))
        assert table["key_ID"] == ["1", "2", "3"]
        assert table["no_membrs"] == [3.0, None, 7.0]

    def test_delimiter(self, tmp_path):
        path = tmp_path / "semi.csv"
        path.write_text("a;b\n1;x\n")
        table = read_csv(path, delimiter=";")
        assert table_to_dict(table) == {"a": [1], "b": ["x"]}

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_csv(tmp_path / "nope.csv")

    def test_none_override_ignored(self, interviews_csv):
        table = read_csv(interviews_csv, missing_value_token=None)
        assert table_to_dict(table)["no_membrs"] == [3, None, 7]


class TestWriteCsv:
    """Tests for write_csv."""

    def test_round_trip(self, tmp_path):
        table = table_new({
            "village": ["God", None, "Ruaca"],
            "no_membrs": [3, 7, None],
            "mean": [2.5, None, 1.0],
            "memb_assoc": [True, None, False],
        })
        path = tmp_path / "out.csv"
        write_csv(table, path)
        assert table_to_dict(read_csv(path)) == table_to_dict(table)

    def test_missing_written_empty(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(table_new({"a": [1, None], "b": ["x", "y"]}), path)
        assert _read_raw(path) == [["a", "b"], ["1", "x"], ["", "y"]]

    def test_mixed_column_as_text(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(table_new({"a": [1, "x"]}), path)
        assert _read_raw(path) == [["a"], ["1"], ["x"]]

    def test_all_missing_column(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(table_new({"a": [1, 2], "b": [None, None]}), path)
        assert _read_raw(path) == [["a", "b"], ["1", ""], ["2", ""]]

    def test_write_options(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(table_new({"a": [1], "b": [2]}), path, WriteOptions(delimiter=";", include_header=False))
        assert _read_raw(path, delimiter=";") == [["1", "2"]]

    def test_row_oriented_input(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv({"columns": ["a", "b"], "rows": [[1, "x"], [2, "y"]]}, path)
        assert _read_raw(path) == [["a", "b"], ["1", "x"], ["2", "y"]]


class TestOptions:
    """Tests for ReadOptions and WriteOptions validation."""

    def test_defaults(self):
        config = Config()
        assert config.read.missing_value_token == "NA"
        assert config.read.delimiter == ","
        assert config.write.include_header is True

    def test_unknown_column_type(self):
        with pytest.raises(ValueError, match="Unknown type 'date'"):
            ReadOptions(column_types={"when": "date"})

    def test_bad_delimiter(self):
        with pytest.raises(ValueError, match="single character"):
            WriteOptions(delimiter=";;")

    def test_with_overrides(self):
        options = ReadOptions().with_overrides(missing_value_token="NULL", delimiter=None)
        assert options.missing_value_token == "NULL"
        assert options.delimiter == ","


class TestLoadConfig:
    """Tests for load_config."""

    def test_load(self, tmp_path):
        path = tmp_path / "tidyshape.yml"
        path.write_text(
            "read:\n"
            "  missing_value_token: NULL_TOKEN\n"
            "  column_types:\n"
            "    key_ID: text\n"
            "  true_values: [Y]\n"
            "write:\n"
            "  delimiter: ';'\n"
        )
        config = load_config(path)
        assert config.read.missing_value_token == "NULL_TOKEN"
        assert config.read.column_types == {"key_ID": "text"}
        assert config.read.true_values == ("Y",)
        assert config.write.delimiter == ";"
        assert config.write.include_header is True

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_caching(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("read:\n  delimiter: ';'\n")
        first = load_config(path)
        assert load_config(path) is first
        clear_cache()
        assert load_config(path) is not first

    def test_unknown_section(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("plot:\n  width: 3\n")
        with pytest.raises(ValueError, match="Unknown config sections"):
            load_config(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("read:\n  encoding: latin1\n")
        with pytest.raises(ValueError, match="encoding"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yml")
