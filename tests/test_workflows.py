"""Tests for the end-to-end workflows."""

import asyncio

import pytest
from conftest import FakeProvider, read_json, write_json

from i18nkit.errors import LocaleConflictError, LocaleFileError, ProviderError
from i18nkit.locale_files import TRANSLATIONS_FILE, UNTRANSLATED_FILE
from i18nkit.workflows import WorkflowRunner, WorkflowSummary

LOGIN = """import React from 'react';

export function Login() {
  const message = '欢迎回来';
  return (
    <div>
      <button title="登录">提交</button>
      <span>{message}</span>
    </div>
  );
}
"""

TITLE = """import { useTranslation } from 'react-i18next';

export function Title() {
  const { t } = useTranslation();
  return <h1>{t('title__text')}</h1>;
}
"""


class FailingProvider(FakeProvider):
    async def translate(self, batch, *, source_locale, target_locale):
        self.translate_calls.append(batch)
        raise ProviderError("quota exhausted", retryable=False)


def run(runner, mode, **kwargs):
    return asyncio.run(runner.run(mode, **kwargs))


@pytest.fixture
def login_file(project):
    path = project / "src" / "pages" / "Login.tsx"
    path.parent.mkdir(parents=True)
    path.write_text(LOGIN, encoding="utf-8")
    return path


class TestGenerate:
    """Extracting, naming and rewriting source files."""

    def test_writes_locales_and_rewrites_source(self, make_config, project, login_file):
        """Every string lands in the source locale and the component is rewritten."""
        provider = FakeProvider(ids={"欢迎回来": "welcome", "登录": "signIn", "提交": "submit"})
        summary = run(WorkflowRunner(make_config(), provider=provider), "generate")

        assert summary.strings_found == 3
        assert summary.files_changed == 1
        assert len(provider.id_calls) == 1
        assert sorted(provider.id_calls[0]) == sorted(["欢迎回来", "登录", "提交"])

        source = read_json(project / "src/locales/zh-CN.json")
        assert sorted(source.values()) == sorted(["欢迎回来", "登录", "提交"])
        assert any(key.endswith("submit") for key in source)
        target = read_json(project / "src/locales/en-US.json")
        assert target == {key: "" for key in source}

        rewritten = login_file.read_text(encoding="utf-8")
        assert "提交" not in rewritten
        assert "const { t } = useTranslation();" in rewritten

    def test_second_run_finds_nothing(self, make_config, login_file):
        """Rewritten sources are not extracted again."""
        run(WorkflowRunner(make_config(), skip_llm=True), "generate")
        summary = run(WorkflowRunner(make_config(), skip_llm=True), "generate")
        assert summary.strings_found == 0
        assert summary.files_changed == 0

    def test_skip_llm_uses_local_ids(self, make_config, project, login_file):
        """Without the provider identifiers are generated locally."""
        provider = FakeProvider()
        run(WorkflowRunner(make_config(), provider=provider, skip_llm=True), "generate")
        assert provider.id_calls == []
        assert len(read_json(project / "src/locales/zh-CN.json")) == 3

    def test_known_texts_reuse_ids(self, make_config, project, login_file):
        """Texts already in the source locale keep their identifier."""
        write_json(project / "src/locales/zh-CN.json", {"common__submit": "提交"})
        run(WorkflowRunner(make_config(), skip_llm=True), "generate")
        assert '<Trans i18nKey="common__submit" />' in login_file.read_text(encoding="utf-8")

    def test_dry_run_writes_nothing(self, make_config, project, login_file):
        """A dry run reports identifiers but leaves every file alone."""
        summary = run(WorkflowRunner(make_config(), skip_llm=True, dry_run=True), "generate")
        assert summary.strings_found == 3
        assert login_file.read_text(encoding="utf-8") == LOGIN
        assert not (project / "src/locales/zh-CN.json").exists()

    def test_bad_locale_file_stops_before_rewriting(self, make_config, project, login_file):
        """A malformed locale file aborts the run with sources untouched."""
        (project / "src/locales/zh-CN.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(LocaleFileError):
            run(WorkflowRunner(make_config(), skip_llm=True), "generate")
        assert login_file.read_text(encoding="utf-8") == LOGIN

    def test_no_files(self, make_config, project):
        """An empty source directory is not an error."""
        (project / "src" / "pages").mkdir()
        summary = run(WorkflowRunner(make_config(), skip_llm=True), "generate")
        assert summary.files_scanned == 0


class TestTranslationCycle:
    """pick, translate and merge."""

    @pytest.fixture(autouse=True)
    def locales(self, project):
        write_json(project / "src/locales/zh-CN.json", {"a": "你好", "b": "再见"})
        write_json(project / "src/locales/en-US.json", {"a": "Hello", "b": ""})

    def test_pick_splits_entries(self, make_config, project):
        """Translated and untranslated entries go to separate working files."""
        summary = WorkflowRunner(make_config()).pick()
        assert summary.entries_pending == 1
        assert read_json(project / "src/locales" / UNTRANSLATED_FILE) == {"b": {"zh-CN": "再见", "en-US": ""}}
        assert read_json(project / "src/locales" / TRANSLATIONS_FILE) == {"a": {"zh-CN": "你好", "en-US": "Hello"}}

    def test_translate_then_merge(self, make_config, project):
        """Completed translations reach the target locale file."""
        provider = FakeProvider(translations={"再见": "Goodbye"})
        runner = WorkflowRunner(make_config(), provider=provider)
        runner.pick()
        summary = asyncio.run(runner.translate())
        assert summary.entries_translated == 1
        assert read_json(project / "src/locales" / UNTRANSLATED_FILE)["b"]["en-US"] == "Goodbye"

        merged = runner.merge()
        assert merged.entries_translated == 1
        assert read_json(project / "src/locales/en-US.json") == {"a": "Hello", "b": "Goodbye"}
        assert read_json(project / "src/locales" / UNTRANSLATED_FILE) == {}
        assert set(read_json(project / "src/locales" / TRANSLATIONS_FILE)) == {"a", "b"}

    def test_failed_batch_keeps_original(self, make_config, project):
        """A batch that fails twice is counted and left as it was."""
        runner = WorkflowRunner(make_config(), provider=FailingProvider())
        runner.pick()
        summary = asyncio.run(runner.translate())
        assert summary.failed_batches == 1
        assert summary.entries_pending == 1
        assert read_json(project / "src/locales" / UNTRANSLATED_FILE) == {"b": {"zh-CN": "再见", "en-US": ""}}
        assert runner.policy.messages()

    def test_merge_without_translations(self, make_config):
        """Merging with nothing completed only warns."""
        runner = WorkflowRunner(make_config())
        runner.pick()
        summary = runner.merge()
        assert summary.entries_translated == 0
        assert summary.entries_pending == 1

    def test_automatic_runs_every_step(self, make_config, project, login_file):
        """automatic chains generate, pick, translate and merge."""
        runner = WorkflowRunner(make_config(), skip_llm=True)
        summary = run(runner, "automatic")
        assert summary.mode == "automatic"
        target = read_json(project / "src/locales/en-US.json")
        # the offline provider copies the source text
        assert target["b"] == "再见"
        assert "提交" in target.values()


class TestRestore:
    """Turning calls back into text."""

    @pytest.fixture
    def title_file(self, project):
        write_json(project / "src/locales/zh-CN.json", {"title__text": "标题"})
        path = project / "src" / "Title.tsx"
        path.write_text(TITLE, encoding="utf-8")
        return path

    def test_in_place(self, make_config, title_file):
        """Files are rewritten where they are."""
        summary = WorkflowRunner(make_config()).restore()
        assert summary.files_changed == 1
        restored = title_file.read_text(encoding="utf-8")
        assert "标题" in restored
        assert "useTranslation" not in restored

    def test_output_directory(self, make_config, project, title_file, tmp_path):
        """With an output directory the originals stay untouched."""
        output = tmp_path / "restored"
        WorkflowRunner(make_config()).restore(output=output)
        assert title_file.read_text(encoding="utf-8") == TITLE
        assert "标题" in (output / "Title.tsx").read_text(encoding="utf-8")

    def test_dry_run(self, make_config, title_file):
        """A dry run counts the files it would change."""
        summary = WorkflowRunner(make_config(), dry_run=True).restore()
        assert summary.files_changed == 1
        assert title_file.read_text(encoding="utf-8") == TITLE


class TestExport:
    """Combining primary and custom locale files."""

    def test_merges_custom_entries(self, make_config, project):
        """Custom keys are added to the exported files."""
        write_json(project / "src/locales/zh-CN.json", {"a": "甲"})
        write_json(project / "src/locales/custom/zh-CN.json", {"c": "丙"})
        output = project / "out"
        summary = WorkflowRunner(make_config()).export(output)
        assert read_json(output / "zh-CN.json") == {"a": "甲", "c": "丙"}
        assert read_json(output / "en-US.json") == {}
        assert summary.files_changed == 2

    def test_conflicts_are_rejected(self, make_config, project):
        """A key redefined by the custom files stops the export."""
        write_json(project / "src/locales/zh-CN.json", {"a": "甲"})
        write_json(project / "src/locales/custom/zh-CN.json", {"a": "乙"})
        with pytest.raises(LocaleConflictError) as info:
            WorkflowRunner(make_config()).export(project / "out")
        assert "- zh-CN: a" in str(info.value)
        assert not (project / "out").exists()


class TestRun:
    """Mode dispatch."""

    def test_provider_is_closed_when_owned(self, make_config, project):
        """Providers built by the runner are released after the run."""
        runner = WorkflowRunner(make_config())
        provider = FakeProvider()
        runner._provider = provider
        run(runner, "pick")
        assert provider.closed

    def test_injected_provider_stays_open(self, make_config):
        """A caller-supplied provider is the caller's to close."""
        provider = FakeProvider()
        run(WorkflowRunner(make_config(), provider=provider), "pick")
        assert not provider.closed

    def test_absorb(self):
        """Sub-run counters are summed; pending is taken from the last step."""
        total = WorkflowSummary(mode="automatic", entries_added=1, entries_pending=4)
        total.absorb(WorkflowSummary(mode="merge", entries_added=2, entries_pending=1, changed_files=["x"]))
        assert total.entries_added == 3
        assert total.entries_pending == 1
        assert total.changed_files == ["x"]
