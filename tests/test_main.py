# tests/test_main.py
"""Tests for the command-line interface."""

import json

import pytest

from javacheck.config import ENV_VAR
from javacheck.main import EXIT_FAILURE, EXIT_MISS, EXIT_OK, main
from tests.conftest import CLEAN_UNIT, LOSSY_CONVERSION, MISSING_RETURN_TYPE


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)


@pytest.fixture
def unit(tmp_path):
    def write(text, name="Test.java"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return write


class TestCheck:

    def test_text_output(self, unit, capsys):
        path = unit(MISSING_RETURN_TYPE)
        assert main(["check", path]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith(f"{path}:2:12: error:")
        assert out.rstrip().endswith("[missing-return-type]")

    def test_json_output(self, unit, capsys):
        path = unit(LOSSY_CONVERSION)
        assert main(["check", path, "--format", "json"]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["verdict"] == "lossy-conversion"

    def test_summary_output(self, unit, capsys):
        path = unit(CLEAN_UNIT, "Inventory.java")
        main(["check", path, "--format", "summary"])
        assert capsys.readouterr().out == f"{path}: clean (0 diagnostics)\n"

    def test_suppress_option(self, unit, capsys):
        path = unit(LOSSY_CONVERSION)
        main(["check", path, "--suppress", "lossy-conversion"])
        assert capsys.readouterr().out == ""

    def test_unknown_suppressed_category(self, unit):
        assert main(["check", unit(CLEAN_UNIT), "--suppress", "nonsense"]) == EXIT_FAILURE

    def test_unreadable_file(self, tmp_path, unit):
        good = unit(CLEAN_UNIT)
        assert main(["check", good, str(tmp_path / "Absent.java")]) == EXIT_FAILURE

    def test_config_file(self, tmp_path, unit, capsys):
        config = tmp_path / "javacheck.sexp"
        config.write_text("(javacheck (disable lossy-conversion))")
        path = unit(LOSSY_CONVERSION)
        assert main(["--config", str(config), "check", path]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_bad_config_file(self, tmp_path, unit):
        config = tmp_path / "bad.sexp"
        config.write_text("(javacheck (colour red))")
        assert main(["--config", str(config), "check", unit(CLEAN_UNIT)]) == EXIT_FAILURE


class TestBatch:

    def test_evaluate_passes(self, dataset, capsys):
        assert main(["batch", str(dataset), "--evaluate"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "4 units analysed" in out
        assert "evaluation: 2/2 erroneous units detected" in out

    def test_evaluate_miss(self, dataset, capsys):
        slide = dataset / "11-access-non-static-variable" / "1"
        (slide / "[E]Slide.java").write_text((slide / "[C]Slide.java").read_text())
        assert main(["batch", str(dataset), "--evaluate"]) == EXIT_MISS

    def test_output_file(self, dataset, tmp_path):
        out = tmp_path / "reports.jsonl"
        assert main(["batch", str(dataset), "-o", str(out)]) == EXIT_OK
        lines = out.read_text().splitlines()
        assert len(lines) == 4
        assert {json.loads(line)["verdict"] for line in lines} == {
            "clean", "missing-return-type", "access-non-static-variable",
        }

    def test_missing_directory(self, tmp_path):
        assert main(["batch", str(tmp_path / "nowhere")]) == EXIT_FAILURE


class TestParse:

    def test_sexp(self, unit, capsys):
        assert main(["parse", unit(CLEAN_UNIT)]) == EXIT_OK
        assert capsys.readouterr().out.startswith("(compilation-unit")

    def test_source(self, unit, capsys):
        main(["parse", unit(MISSING_RETURN_TYPE), "--format", "source"])
        assert "public someName(String s)" in capsys.readouterr().out

    def test_tokens(self, unit, capsys):
        main(["parse", unit("class A {}"), "--format", "tokens"])
        first = capsys.readouterr().out.splitlines()[0]
        assert first.startswith("1:1\t")
        assert first.endswith("'class'")

    def test_issues_go_to_stderr(self, unit, capsys):
        main(["parse", unit("class A {\n    int = ;\n}\n")])
        assert ":2:" in capsys.readouterr().err


class TestRules:

    def test_lists_every_rule(self, capsys):
        assert main(["rules"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "missing-return-type\n" in out
        assert "inheritance-cycle\n" in out

    def test_disabled_rule_is_marked(self, tmp_path, capsys):
        config = tmp_path / "javacheck.sexp"
        config.write_text("(javacheck (disable lossy-conversion))")
        main(["--config", str(config), "rules"])
        out = capsys.readouterr().out
        assert "lossy-conversion (disabled)\n" in out
        assert out.count("(disabled)") == 1

    def test_conflict_priority_is_shown(self, capsys):
        main(["rules"])
        out = capsys.readouterr().out
        assert "conflict priority: missing-return-type > illegal-constructor-name > missing-void" in out
        assert "(priority missing-void)" in out

    def test_priority_note_follows_the_config(self, tmp_path, capsys):
        config = tmp_path / "javacheck.sexp"
        config.write_text("(javacheck (priority missing-void illegal-constructor-name))")
        main(["--config", str(config), "rules"])
        out = capsys.readouterr().out
        assert "conflict priority: missing-void > illegal-constructor-name\n" in out
        assert "(priority missing-void)" not in out


class TestMain:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_OK
        assert "usage:" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
