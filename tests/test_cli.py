"""Tests for the command line entry point."""

import pytest
from conftest import read_json, write_json

from i18nkit.cli import build_parser, main
from i18nkit.configuration import ENV_OPTIONS
from i18nkit.locale_files import UNTRANSLATED_FILE


@pytest.fixture
def in_project(project, monkeypatch):
    monkeypatch.chdir(project)
    for name in ENV_OPTIONS:
        monkeypatch.delenv(name, raising=False)
    return project


class TestParser:
    """Argument parsing."""

    def test_defaults(self):
        """Without options the automatic workflow runs on the configured source."""
        args = build_parser().parse_args([])
        assert args.mode == "automatic"
        assert args.target is None
        assert not args.dry_run

    def test_unknown_mode(self):
        """Modes are limited to the known workflows."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-m", "publish"])

    def test_quiet_and_verbose_conflict(self, in_project):
        """``--quiet`` and ``--verbose`` cannot be combined."""
        with pytest.raises(SystemExit):
            main(["-q", "-v", "-m", "pick"])


class TestMain:
    """Exit codes and summaries."""

    def test_pick(self, in_project, capsys):
        """A successful run exits with 0 and prints a summary."""
        write_json(in_project / "src/locales/zh-CN.json", {"a": "你好"})
        assert main(["-m", "pick", "-p", "echo"]) == 0
        assert read_json(in_project / "src/locales" / UNTRANSLATED_FILE) == {"a": {"zh-CN": "你好", "en-US": ""}}
        assert "Pick complete." in capsys.readouterr().out

    def test_configuration_error_exits_with_2(self, in_project, capsys):
        """Invalid configuration is reported with exit code 2."""
        (in_project / "i18nkit.yaml").write_text("framework: angular\n", encoding="utf-8")
        assert main(["-m", "pick"]) == 2
        assert "framework" in capsys.readouterr().out

    def test_missing_config_file(self, in_project):
        """An explicit configuration file must exist."""
        assert main(["-m", "pick", "--config", "nope.yaml"]) == 2

    def test_locale_error_exits_with_1(self, in_project, capsys):
        """A malformed locale file is a runtime failure."""
        (in_project / "src/locales/zh-CN.json").write_text("{oops", encoding="utf-8")
        assert main(["-m", "pick", "-p", "echo"]) == 1
        assert "zh-CN.json" in capsys.readouterr().out

    def test_export_conflict_exits_with_1(self, in_project, capsys):
        """Conflicting custom keys are listed."""
        write_json(in_project / "src/locales/zh-CN.json", {"a": "甲"})
        write_json(in_project / "src/locales/custom/zh-CN.json", {"a": "乙"})
        assert main(["-m", "export", "-p", "echo", "-o", "out"]) == 1
        assert "- zh-CN: a" in capsys.readouterr().out

    def test_generate_with_skip_llm(self, in_project):
        """The whole generate step runs offline."""
        page = in_project / "src" / "Home.tsx"
        page.write_text("export function Home() {\n  return <p>首页</p>;\n}\n", encoding="utf-8")
        assert main(["-m", "generate", "--skip-llm", "-q", "-p", "echo"]) == 0
        assert "首页" in read_json(in_project / "src/locales/zh-CN.json").values()
        assert "<Trans i18nKey=" in page.read_text(encoding="utf-8")
