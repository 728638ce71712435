"""Tests for identifier derivation and assignment."""

import asyncio

from conftest import FakeProvider

from i18nkit.batching import BatchProcessor
from i18nkit.ids import (
    IdentifierAssigner,
    IdGenerator,
    collect_existing_ids,
    sanitize_prefix,
    sanitize_semantic_id,
    text_hash,
)
from i18nkit.policy import ErrorPolicy
from i18nkit.structures import ExtractedString, StringContext


def record(text, path="src/forms/Login.tsx", line=1):
    return ExtractedString(original=text, file_path=path, line=line, column=1, context=StringContext.JSX_TEXT)


class TestSanitizing:
    """Normalisation of identifier segments."""

    def test_lowercases_and_joins_words(self):
        """Whitespace becomes an underscore that is then squeezed out."""
        assert sanitize_semantic_id("Submit Form") == "submitform"

    def test_keeps_double_underscore_separator(self):
        """A double underscore survives while single ones are removed."""
        assert sanitize_semantic_id("user__first_name") == "user__firstname"

    def test_squeezes_long_underscore_runs(self):
        """Three or more underscores collapse to the separator."""
        assert sanitize_semantic_id("a_____b") == "a__b"

    def test_hash_identifiers_are_exempt(self):
        """``t_<hash>`` identifiers keep their underscore."""
        assert sanitize_semantic_id("t_1abc") == "t_1abc"

    def test_preserve_case(self):
        """Case is kept on request."""
        assert sanitize_semantic_id("Login", preserve_case=True) == "Login"

    def test_prefix_parts_are_alphanumeric(self):
        """Prefix segments drop punctuation but keep their case."""
        assert sanitize_prefix("forms__Login.page") == "forms__Loginpage"


class TestDirectoryPrefix:
    """Prefixes derived from the file location below the anchor."""

    def test_file_in_first_level_directory_uses_file_name(self):
        """A file directly in the first-level directory is named after itself."""
        generator = IdGenerator()
        assert generator.directory_prefix("src/forms/Login.tsx") == "forms__Login"

    def test_nested_file_uses_parent_directory(self):
        """Deeper files use the first-level and the parent directory."""
        generator = IdGenerator()
        assert generator.directory_prefix("src/forms/sub/Card.tsx") == "forms__sub"

    def test_absolute_paths_are_supported(self):
        """Anything above the anchor is ignored."""
        generator = IdGenerator()
        assert generator.directory_prefix("/home/me/app/src/pages/user/List.vue") == "pages__user"

    def test_file_directly_in_anchor(self):
        """A file at the anchor level pairs its full name with the anchor."""
        generator = IdGenerator()
        assert generator.directory_prefix("src/App.tsx") == "App.tsx__src"
        assert generator.generate("src/App.tsx", "提交") == "Apptsx__src__submit"

    def test_missing_anchor_gives_no_prefix(self):
        """Files outside the anchor carry no prefix."""
        generator = IdGenerator()
        assert generator.directory_prefix("lib/util.ts") == ""

    def test_custom_anchor(self):
        """The anchor directory is configurable."""
        generator = IdGenerator(anchor="app")
        assert generator.directory_prefix("app/settings/Panel.tsx") == "settings__Panel"

    def test_fixed_prefix_wins(self):
        """A configured prefix replaces the derived one."""
        generator = IdGenerator(prefix="admin")
        assert generator.generate("src/forms/Login.tsx", "提交") == "admin__submit"


class TestGeneration:
    """Local identifier generation."""

    def test_dictionary_word(self):
        """Common UI words map to their English name."""
        generator = IdGenerator()
        assert generator.generate("src/forms/Login.tsx", "提交") == "forms__Login__submit"

    def test_dictionary_match_is_exact(self):
        """Longer text containing a dictionary word is hashed."""
        generator = IdGenerator()
        generated = generator.generate("src/forms/Login.tsx", "提交订单")
        assert generated == f"forms__Login__t_{text_hash('提交订单')}"

    def test_latin_text_is_sanitized(self):
        """Non-Chinese text becomes its own identifier."""
        generator = IdGenerator()
        assert generator.generate("src/forms/Login.tsx", "Hello World!") == "forms__Login__helloworld"

    def test_identifiers_are_unique(self):
        """Collisions receive numeric suffixes."""
        generator = IdGenerator({"forms__Login__submit"})
        assert generator.generate("src/forms/Login.tsx", "提交") == "forms__Login__submit_1"
        assert generator.generate("src/forms/Login.tsx", "提交") == "forms__Login__submit_2"

    def test_custom_dictionary_replaces_default(self):
        """A configured dictionary is used instead of the built-in one."""
        generator = IdGenerator(dictionary={"提交": "send"})
        assert generator.generate("src/forms/Login.tsx", "提交") == "forms__Login__send"

    def test_hash_is_stable(self):
        """The same text always hashes to the same value."""
        assert text_hash("你好") == text_hash("你好")
        assert text_hash("你好") != text_hash("再见")


class TestExistingIds:
    """Scanning call sites for identifiers already in use."""

    def test_collects_call_descriptor_and_component_ids(self):
        """Function calls, descriptors and component props are all found."""
        found = collect_existing_ids(
            [
                "t('a__b'); $t(\"c\")",
                "intl.formatMessage({ id: 'd' })",
                '<Trans i18nKey="e" /> <FormattedMessage id="f" />',
            ]
        )
        assert {"a__b", "c", "d", "e", "f"} <= found

    def test_strips_namespace(self):
        """Namespaced keys are recorded without the namespace."""
        assert collect_existing_ids(["t('common:ok')"], namespace="common") == {"ok"}


class TestIdentifierAssigner:
    """Assignment across files with an optional provider."""

    def test_identical_texts_share_one_identifier(self):
        """One message used in two files gets a single identifier."""
        items = [record("提交"), record("提交", path="src/forms/sub/Card.tsx")]
        assigner = IdentifierAssigner(IdGenerator())
        assigned = asyncio.run(assigner.assign(items))
        assert assigned == {"提交": "forms__Login__submit"}
        assert items[0].semantic_id == items[1].semantic_id == "forms__Login__submit"

    def test_known_texts_reuse_existing_identifier(self):
        """Text already in the locale file keeps its identifier."""
        items = [record("提交")]
        assigner = IdentifierAssigner(IdGenerator(), known_texts={"提交": "common__submit"})
        asyncio.run(assigner.assign(items))
        assert items[0].semantic_id == "common__submit"

    def test_provider_identifiers_are_prefixed(self):
        """Identifiers proposed by the provider receive the directory prefix."""
        provider = FakeProvider(ids={"保存用户": "saveUser"})
        processor = BatchProcessor(provider)
        items = [record("保存用户")]
        assigner = IdentifierAssigner(IdGenerator(), processor=processor)
        asyncio.run(assigner.assign(items))
        assert items[0].semantic_id == "forms__Login__saveuser"
        assert provider.id_calls == [["保存用户"]]

    def test_empty_provider_answer_falls_back(self):
        """A blank proposal is replaced by a local identifier."""
        provider = FakeProvider()
        items = [record("提交")]
        assigner = IdentifierAssigner(IdGenerator(), processor=BatchProcessor(provider))
        asyncio.run(assigner.assign(items))
        assert items[0].semantic_id == "forms__Login__submit"

    def test_count_mismatch_falls_back_and_records(self, reporter):
        """A provider answering with the wrong count is ignored for that file."""

        class ShortProvider(FakeProvider):
            async def generate_ids(self, texts):
                return ["onlyOne"]

        policy = ErrorPolicy(reporter=reporter)
        items = [record("提交"), record("取消", line=2)]
        assigner = IdentifierAssigner(
            IdGenerator(), processor=BatchProcessor(ShortProvider()), reporter=reporter, policy=policy
        )
        asyncio.run(assigner.assign(items))
        assert [item.semantic_id for item in items] == ["forms__Login__submit", "forms__Login__cancel"]
        assert any("returned 1 identifiers for 2" in message for message in policy.messages())
