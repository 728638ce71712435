"""Tests for the Vue single-file component pipeline."""

import pytest

from i18nkit.adapters import build_adapter
from i18nkit.errors import SourceParseError
from i18nkit.structures import ComponentKind, StringContext
from i18nkit.vue.extractor import document_source, is_technical_attribute
from i18nkit.vue.restore import parse_values
from i18nkit.vue.sfc import parse_vue

CARD = """<template>
  <div class="card">
    <p title="提示">你好，世界</p>
    <el-input placeholder="请输入" size="small" />
    <span>{{ count }}</span>
  </div>
</template>

<script setup lang="ts">
const message = '加载中';
</script>
"""

IDS = {"提示": "card__tip", "你好，世界": "card__hello", "请输入": "card__enter", "加载中": "card__loading"}


def extract(adapter, code, path="src/Card.vue"):
    records = adapter.get_text_extractor().extract_from_source(code, path)
    for record in records:
        record.semantic_id = IDS.get(record.original, "")
    return records


class TestVueExtractor:
    """Finding text in templates and scripts."""

    def test_contexts(self):
        """Text nodes, static attributes and script literals are found."""
        records = {record.original: record for record in extract(build_adapter("vue"), CARD)}
        assert set(records) == {"提示", "你好，世界", "请输入", "加载中"}
        assert records["你好，世界"].context is StringContext.TEXT_NODE
        assert records["提示"].context is StringContext.STATIC_ATTRIBUTE
        assert records["提示"].attribute_name == "title"
        assert records["提示"].context.family == "attribute"
        assert records["你好，世界"].context.family == "text-node"
        assert records["加载中"].context is StringContext.SCRIPT
        assert records["加载中"].component_kind is ComponentKind.SETUP

    def test_existing_calls_are_skipped(self):
        """Template calls to ``$t`` are not extracted again."""
        code = "<template>\n  <p :title=\"$t('x')\">{{ $t('y') }}</p>\n</template>\n"
        assert extract(build_adapter("vue"), code) == []

    def test_technical_attributes(self):
        """Layout and identity attributes never carry text."""
        assert is_technical_attribute("size")
        assert is_technical_attribute("class")
        assert is_technical_attribute("label-width")
        assert not is_technical_attribute("title")
        assert not is_technical_attribute("placeholder")


class TestVueTransformer:
    """Rewriting templates and scripts."""

    def test_template_and_script_setup(self):
        """Template text and attributes use ``$t`` and the script gets ``useI18n``."""
        adapter = build_adapter("vue")
        result = adapter.get_transformer().transform("src/Card.vue", extract(adapter, CARD), text=CARD)
        assert "{{ $t('card__hello') }}" in result
        assert ":title=\"$t('card__tip')\"" in result
        assert ":placeholder=\"$t('card__enter')\"" in result
        assert 'size="small"' in result
        assert "const message = t('card__loading');" in result
        assert "import { useI18n } from 'vue-i18n';" in result
        assert "const { t } = useI18n();" in result

    def test_options_api_uses_this(self):
        """Options API scripts call the global ``this.$t``."""
        code = (
            "<script>\n"
            "export default {\n"
            "  data() {\n"
            "    return { title: '标题' };\n"
            "  },\n"
            "};\n"
            "</script>\n"
        )
        adapter = build_adapter("vue")
        records = adapter.get_text_extractor().extract_from_source(code, "src/Old.vue")
        assert records[0].component_kind is ComponentKind.OPTIONS
        records[0].semantic_id = "old__title"
        result = adapter.get_transformer().transform("src/Old.vue", records, text=code)
        assert "this.$t('old__title')" in result
        assert "useI18n" not in result


class TestVueRestore:
    """Putting template and script text back."""

    locale = {value: key for key, value in IDS.items()}

    def test_round_trip(self):
        """Restoring a transformed component brings back every literal."""
        adapter = build_adapter("vue")
        transformed = adapter.get_transformer().transform("src/Card.vue", extract(adapter, CARD), text=CARD)
        restored = adapter.get_restore_transformer().transform("src/Card.vue", self.locale, text=transformed)
        assert 'title="提示"' in restored
        assert ">你好，世界<" in restored
        assert 'placeholder="请输入"' in restored
        assert "const message = '加载中';" in restored
        assert "useI18n" not in restored
        assert "$t(" not in restored

    def test_untouched_component_is_returned_verbatim(self):
        """A component without calls comes back unchanged."""
        restorer = build_adapter("vue").get_restore_transformer()
        assert restorer.transform("src/Card.vue", self.locale, text=CARD) == CARD

    def test_parse_values(self):
        """Template value objects map names to expressions."""
        assert parse_values("{ count: list.length, name }") == {"count": "list.length", "name": "name"}
        assert parse_values(None) == {}


DIALOG = """<template>
  <el-button :title="ok ? '确定' : '取消'" :size="size" />
</template>
"""

LIST = """<script setup lang="ts">
const count = 3;
const total = `${'固定'}：共${count}项`;
</script>
"""


class TestNestedLiterals:
    """Literals inside an extracted template literal belong to it."""

    def test_script_module(self):
        """Strings inside ``${...}`` are not extracted a second time."""
        code = "const a = `剩余 ${n} 个，${'固定'}`;\nconst b = `共${fn('中文')}条`;\n"
        records = build_adapter("vue").get_text_extractor().extract_from_source(code, "src/util.ts")
        assert [record.original for record in records] == ["`剩余 ${n} 个，${'固定'}`", "`共${fn('中文')}条`"]

    def test_template_interpolation(self):
        """Interpolations follow the same rule."""
        code = "<template>\n  <span>{{ `剩余${n}个，${'固定'}` }}</span>\n</template>\n"
        records = build_adapter("vue").get_text_extractor().extract_from_source(code, "src/Left.vue")
        assert [record.original for record in records] == ["`剩余${n}个，${'固定'}`"]
        assert records[0].context is StringContext.INTERPOLATION


class TestDynamicAttributes:
    """Bound attribute expressions."""

    def test_literals_in_expression(self):
        """Each literal of a bound expression is its own record."""
        records = extract(build_adapter("vue"), DIALOG, "src/Dialog.vue")
        assert [record.original for record in records] == ["确定", "取消"]
        assert all(record.context is StringContext.DYNAMIC_ATTRIBUTE for record in records)
        assert all(record.attribute_name == "title" for record in records)

    def test_round_trip(self):
        """Calls replace the literals in place and restore puts them back."""
        adapter = build_adapter("vue")
        records = extract(adapter, DIALOG, "src/Dialog.vue")
        records[0].semantic_id = "dialog__ok"
        records[1].semantic_id = "dialog__cancel"
        transformed = adapter.get_transformer().transform("src/Dialog.vue", records, text=DIALOG)
        assert ":title=\"ok ? $t('dialog__ok') : $t('dialog__cancel')\"" in transformed
        assert ':size="size"' in transformed
        locale = {"dialog__ok": "确定", "dialog__cancel": "取消"}
        restored = adapter.get_restore_transformer().transform("src/Dialog.vue", locale, text=transformed)
        assert restored == DIALOG


class TestTemplateLiteralInlining:
    """Literal interpolations are folded into the message."""

    def test_processed_message(self):
        """``${'固定'}`` is inlined while ``${count}`` stays a variable."""
        records = build_adapter("vue").get_text_extractor().extract_from_source(LIST, "src/List.vue")
        assert len(records) == 1
        assert records[0].original == "`${'固定'}：共${count}项`"
        assert records[0].processed_message == "`固定：共${count}项`"
        assert records[0].template_variables == ["count"]

    def test_transform_uses_values(self):
        """The call carries the remaining variable."""
        adapter = build_adapter("vue")
        records = adapter.get_text_extractor().extract_from_source(LIST, "src/List.vue")
        records[0].semantic_id = "list__total"
        result = adapter.get_transformer().transform("src/List.vue", records, text=LIST)
        assert "const total = t('list__total', { count });" in result


class TestScriptWiring:
    """Imports added to script blocks."""

    def test_import_starts_on_its_own_line(self):
        """A block without imports gets the import below the opening tag."""
        adapter = build_adapter("vue")
        result = adapter.get_transformer().transform("src/Card.vue", extract(adapter, CARD), text=CARD)
        assert "<script setup lang=\"ts\">\nimport { useI18n } from 'vue-i18n';\n" in result

    def test_unparsed_component_is_rejected(self):
        """Template scanning needs a parsed component."""
        with pytest.raises(SourceParseError):
            document_source(parse_vue("const a = 1;\n", "src/a.ts"))
