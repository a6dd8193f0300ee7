# tests/test_config.py
"""Tests for the S-expression configuration file."""

import pytest

from javacheck.config import ENV_VAR, AnalysisConfig, load_config, parse_config
from javacheck.diagnostics import Category
from javacheck.errors import ConfigError
from javacheck.reporter import DEFAULT_PRIORITY


FULL = """\
; project settings
(javacheck
  (priority missing-void missing-return-type)
  (disable string-access-by-index)
  (suppress incomp-return-types)
  (max-recoveries 32)
  (time-budget 2.5)
  (parallel-rules true)
  (jobs 4)
  (suffixes ".java" ".jav"))
"""


class TestParseConfig:

    def test_defaults(self):
        config = parse_config("(javacheck)")
        assert config == AnalysisConfig()
        assert config.priority == DEFAULT_PRIORITY
        assert config.time_budget is None

    def test_every_key(self):
        config = parse_config(FULL)
        assert config.priority == (Category.MISSING_VOID, Category.MISSING_RETURN_TYPE)
        assert config.disabled_rules == frozenset({"string-access-by-index"})
        assert config.suppress == frozenset({"incompatible-return-types"})
        assert config.max_recoveries == 32
        assert config.time_budget == 2.5
        assert config.parallel_rules is True
        assert config.jobs == 4
        assert config.suffixes == (".java", ".jav")

    def test_time_budget_nil(self):
        assert parse_config("(javacheck (time-budget nil))").time_budget is None

    def test_round_trip(self):
        config = parse_config(FULL)
        assert parse_config(config.to_sexp()) == config

    @pytest.mark.parametrize("text", [
        "(javacheck (colour red))",
        "(javacheck (suppress no-such-category))",
        "(javacheck (priority missing-void missing-void))",
        "(javacheck (jobs 0))",
        "(javacheck (jobs 1 2))",
        "(javacheck (max-recoveries \"many\"))",
        "(javacheck (parallel-rules maybe))",
        "(javacheck (time-budget -1))",
        "(javacheck (suffixes))",
        "(settings (jobs 2))",
        "(javacheck jobs)",
        "(javacheck (jobs 2)",
    ])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_config(text)

    def test_error_names_the_source(self):
        with pytest.raises(ConfigError) as info:
            parse_config("(javacheck (colour red))", "project.sexp")
        assert "project.sexp" in str(info.value)


class TestAnalysisConfig:

    def test_replace_ignores_none(self):
        config = AnalysisConfig().replace(jobs=3, time_budget=None)
        assert config.jobs == 3
        assert config.time_budget is None

    def test_registry_honours_disabled_rules(self):
        config = AnalysisConfig(disabled_rules=frozenset({"lossy-conversion"}))
        registry = config.registry()
        enabled = {c.name for c in registry.get_enabled()}
        assert "lossy-conversion" not in enabled

    def test_suppressions(self):
        manager = AnalysisConfig(suppress=frozenset({"missing-void"})).suppressions()
        assert manager.global_suppressions == frozenset({"missing-void"})


class TestLoadConfig:

    def test_no_file_gives_defaults(self):
        assert load_config(env={}) == AnalysisConfig()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "javacheck.sexp"
        path.write_text("(javacheck (jobs 2))", encoding="utf-8")
        assert load_config(path, env={}).jobs == 2

    def test_environment_variable(self, tmp_path):
        path = tmp_path / "env.sexp"
        path.write_text("(javacheck (jobs 5))", encoding="utf-8")
        assert load_config(env={ENV_VAR: str(path)}).jobs == 5

    def test_explicit_path_wins(self, tmp_path):
        explicit = tmp_path / "a.sexp"
        explicit.write_text("(javacheck (jobs 2))", encoding="utf-8")
        other = tmp_path / "b.sexp"
        other.write_text("(javacheck (jobs 7))", encoding="utf-8")
        assert load_config(explicit, env={ENV_VAR: str(other)}).jobs == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.sexp", env={})
