"""Tests for the label lookup tables and settings."""

import os

import pytest

from cdxtract.definitions import LOOKUP_DIR, XtractSettings
from cdxtract.errors import LookupTableError
from cdxtract.lookups import LookupTables, load_lookup_tables, read_smiles_table, read_word_list


class TestShippedTables:
    def test_abbreviations_ignore_case(self):
        tables = load_lookup_tables()
        assert tables.abbreviation_smiles("ph") == tables.abbreviation_smiles("Ph")
        assert tables.abbreviation_smiles("PH") is not None

    def test_agents(self):
        assert load_lookup_tables().agent_smiles("THF") == "C1CCOC1"

    def test_unwanted_words(self):
        assert load_lookup_tables().is_unwanted_word("reflux")

    def test_loaded_once(self):
        assert load_lookup_tables() is load_lookup_tables(LOOKUP_DIR)

    def test_relative_path_shares_cache(self, monkeypatch):
        monkeypatch.chdir(os.path.dirname(LOOKUP_DIR))
        assert load_lookup_tables(os.path.basename(LOOKUP_DIR)) is load_lookup_tables()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(LookupTableError):
            load_lookup_tables(str(tmp_path / "missing"))


class TestReaders:
    def test_smiles_table(self, tmp_path):
        path = tmp_path / "table.smi"
        path.write_text(
            "# comment\n"
            "Acetic acid CC(=O)O\n"
            "Bad C1CC\n"
            "acetic ACID CCO\n"
            "lonely\n"
        )
        table = read_smiles_table(str(path))
        assert table == {"acetic acid": "CC(=O)O"}

    def test_word_list(self, tmp_path):
        path = tmp_path / "words.txt"
        path.write_text("reflux\n\n# skipped\nrt\n")
        assert read_word_list(str(path)) == frozenset({"reflux", "rt"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(LookupTableError):
            read_word_list(str(tmp_path / "none.txt"))


class TestLookupTables:
    def test_unwanted_matches_exactly(self, lookups):
        assert lookups.is_unwanted_abbreviation("Polymer")
        assert not lookups.is_unwanted_abbreviation("polymer")
        assert not lookups.is_unwanted_abbreviation(None)

    def test_tables_are_read_only(self, lookups):
        with pytest.raises(TypeError):
            lookups.abbreviations["new"] = "*C"

    def test_empty_label(self):
        assert LookupTables().abbreviation_smiles(None) is None


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "CDXTRACT_LOOKUP_DIR", "CDXTRACT_AUXINFO_MAX",
            "CDXTRACT_INCHI_OPTIONS", "CDXTRACT_SANITIZE_REACTIONS",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = XtractSettings.from_env()
        assert settings == XtractSettings()

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("CDXTRACT_AUXINFO_MAX", "100")
        monkeypatch.setenv("CDXTRACT_SANITIZE_REACTIONS", "yes")
        settings = XtractSettings.from_env()
        assert settings.aux_info_max_length == 100
        assert settings.sanitize_reactions
