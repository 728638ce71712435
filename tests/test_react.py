"""Tests for the React extractor, transformer and restore pass."""

from i18nkit.adapters import build_adapter
from i18nkit.messages import create_message_with_options
from i18nkit.react.restore import public_component_name
from i18nkit.structures import ComponentKind, StringContext

LOGIN = """import React from 'react';

export function Login() {
  const message = '欢迎回来';
  console.log('调试信息');
  return (
    <div>
      <button title="登录">提交</button>
      <span>{message}</span>
    </div>
  );
}
"""

IDS = {"欢迎回来": "login__welcome", "登录": "login__title", "提交": "login__submit"}


def extract(adapter, code, path="src/Login.tsx"):
    records = adapter.get_text_extractor().extract_from_source(code, path)
    for record in records:
        record.semantic_id = IDS.get(record.original, "")
    return records


def by_text(records):
    return {record.original: record for record in records}


class TestReactExtractor:
    """Finding translatable literals in TSX."""

    def test_contexts(self):
        """Attribute, text and code strings are told apart."""
        records = by_text(extract(build_adapter("react"), LOGIN))
        assert set(records) == {"欢迎回来", "登录", "提交"}
        assert records["登录"].context is StringContext.JSX_ATTRIBUTE
        assert records["提交"].context is StringContext.JSX_TEXT
        assert records["欢迎回来"].component_kind is ComponentKind.FUNCTION

    def test_console_strings_are_skipped(self):
        """Logging arguments are never extracted."""
        records = by_text(extract(build_adapter("react"), LOGIN))
        assert "调试信息" not in records

    def test_translated_calls_are_skipped(self):
        """Arguments of existing translation calls are left alone."""
        code = "export function A() {\n  return <p>{t('已有')}</p>;\n}\n"
        assert extract(build_adapter("react"), code) == []

    def test_positions(self):
        """Lines are 1-based and point at the literal."""
        records = by_text(extract(build_adapter("react"), LOGIN))
        assert records["欢迎回来"].line == 4


class TestReactTransformer:
    """Rewriting literals into react-i18next calls."""

    def transform(self, code=LOGIN, path="src/Login.tsx", framework_library=None):
        adapter = build_adapter("react", framework_library)
        records = extract(adapter, code, path)
        return adapter, adapter.get_transformer().transform(path, records, text=code)

    def test_calls_and_components(self):
        """Attributes get expressions and text gets the ``Trans`` component."""
        _, result = self.transform()
        assert "t('login__welcome')" in result
        assert "title={t('login__title')}" in result
        assert '<Trans i18nKey="login__submit" />' in result
        assert "欢迎回来" not in result

    def test_hook_and_import_injection(self):
        """The component receives the hook and the file its import."""
        _, result = self.transform()
        assert "const { t } = useTranslation();" in result
        assert "react-i18next" in result
        assert "useTranslation" in result.split("export function")[0]

    def test_module_level_strings_use_global_function(self):
        """Strings outside components go through the global instance."""
        code = "export const LABELS = { ok: '好的' };\n"
        adapter = build_adapter("react")
        records = adapter.get_text_extractor().extract_from_source(code, "src/labels.ts")
        records[0].semantic_id = "labels__ok"
        result = adapter.get_transformer().transform("src/labels.ts", records, text=code)
        assert "i18next.t('labels__ok')" in result
        assert "@/plugins/locale" in result
        assert "useTranslation" not in result

    def test_records_without_ids_leave_code_untouched(self):
        """Nothing is rewritten without identifiers."""
        adapter = build_adapter("react")
        records = adapter.get_text_extractor().extract_from_source(LOGIN, "src/Login.tsx")
        assert adapter.get_transformer().transform("src/Login.tsx", records, text=LOGIN) == LOGIN

    def test_react_intl(self):
        """react-intl uses ``formatMessage`` and ``FormattedMessage``."""
        _, result = self.transform(framework_library="react-intl")
        assert "intl.formatMessage({ id: 'login__welcome' })" in result
        assert '<FormattedMessage id="login__submit" />' in result
        assert "useIntl" in result

    def test_class_component_is_wrapped(self):
        """Class components are renamed and passed through the HOC."""
        code = (
            "import React from 'react';\n\n"
            "class Profile extends React.Component {\n"
            "  render() {\n"
            '    return <div title="登录">提交</div>;\n'
            "  }\n"
            "}\n\n"
            "export default Profile;\n"
        )
        _, result = self.transform(code, "src/Profile.tsx")
        assert "ProfileWithOutIntl" in result
        assert "withTranslation()(ProfileWithOutIntl)" in result
        assert "const { t } = this.props;" in result


class TestReactRestore:
    """Putting the source text back."""

    locale = {"login__welcome": "欢迎回来", "login__title": "登录", "login__submit": "提交"}

    def test_round_trip(self):
        """Restoring a transformed file brings back the literals."""
        adapter = build_adapter("react")
        records = extract(adapter, LOGIN)
        transformed = adapter.get_transformer().transform("src/Login.tsx", records, text=LOGIN)
        restored = adapter.get_restore_transformer().transform("src/Login.tsx", self.locale, text=transformed)
        assert "'欢迎回来'" in restored
        assert 'title="登录"' in restored
        assert ">提交<" in restored
        assert "useTranslation" not in restored
        assert "react-i18next" not in restored

    def test_unknown_ids_stay(self):
        """Calls whose id is not in the locale map are kept."""
        code = "export function A() {\n  const { t } = useTranslation();\n  return <p>{t('missing')}</p>;\n}\n"
        restored = build_adapter("react").get_restore_transformer().transform("src/A.tsx", {}, text=code)
        assert restored == code

    def test_untouched_file_is_returned_verbatim(self):
        """A file without translation calls comes back unchanged."""
        restorer = build_adapter("react").get_restore_transformer()
        assert restorer.transform("src/Login.tsx", self.locale, text=LOGIN) == LOGIN


class TestPublicComponentName:
    """Recognising classes renamed by HOC wrapping."""

    def test_suffix_and_underscore(self):
        """Both renaming conventions map back to the public name."""
        assert public_component_name("LoginWithOutIntl") == "Login"
        assert public_component_name("_Login") == "Login"

    def test_other_names_are_not_wrapped(self):
        """Lowercase, double underscore and bare names are ordinary identifiers."""
        assert public_component_name("__Login") is None
        assert public_component_name("_login") is None
        assert public_component_name("_") is None
        assert public_component_name("WithOutIntl") is None


CART = """import React from 'react';

export function Cart({ items, user }) {
  const summary = `${user.name}，共${items.length}件`;
  return <p>{summary}</p>;
}
"""

CONFIRM = """import React, { useCallback } from 'react';

export function Confirm() {
  const onOk = useCallback(() => alert('好的'), []);
  return <button onClick={onOk} />;
}
"""

HOME = """import React, { useEffect } from 'react';

export function Home({ page }) {
  useEffect(() => {
    document.title = '首页';
  }, [page]);
  return <main />;
}
"""

PROFILE = (
    "import React from 'react';\n\n"
    "class Profile extends React.Component {\n"
    "  render() {\n"
    '    return <div title="登录">提交</div>;\n'
    "  }\n"
    "}\n\n"
    "export default Profile;\n"
)


def round_trip(code, path, ids, locale):
    adapter = build_adapter("react")
    records = adapter.get_text_extractor().extract_from_source(code, path)
    for record in records:
        record.semantic_id = ids[record.original]
    transformed = adapter.get_transformer().transform(path, records, text=code)
    restored = adapter.get_restore_transformer().transform(path, locale, text=transformed)
    return records, transformed, restored


class TestTemplateLiterals:
    """Interpolated strings keep their expressions through both directions."""

    def test_placeholders_match_expressions(self):
        """Each interpolation becomes one named placeholder with its expression."""
        records, transformed, _ = round_trip(
            CART, "src/Cart.tsx", {"`${user.name}，共${items.length}件`": "cart__summary"}, {}
        )
        assert records[0].is_template_literal
        assert records[0].template_variables == ["user.name", "items.length"]
        message, values = create_message_with_options(records[0].message_key, records[0].template_variables)
        assert message == "{name}，共{items}件"
        assert values == {"name": "user.name", "items": "items.length"}
        assert "t('cart__summary', { name: user.name, items: items.length })" in transformed

    def test_round_trip(self):
        """Restoring rebuilds the original template literal."""
        _, _, restored = round_trip(
            CART,
            "src/Cart.tsx",
            {"`${user.name}，共${items.length}件`": "cart__summary"},
            {"cart__summary": "{name}，共{items}件"},
        )
        assert restored == CART


class TestMixedChildren:
    """Elements mixing text and expressions become one message."""

    code = "import React from 'react';\n\nexport function Count({ total }) {\n  return <p>共{total}条</p>;\n}\n"

    def test_single_record(self):
        """Text around ``{total}`` is extracted once as a template."""
        records = build_adapter("react").get_text_extractor().extract_from_source(self.code, "src/Count.tsx")
        assert len(records) == 1
        assert records[0].original == "`共${total}条`"
        assert records[0].context is StringContext.JSX_TEXT
        assert records[0].template_variables == ["total"]

    def test_transform_and_restore(self):
        """The children become one ``Trans`` and come back as a template expression."""
        _, transformed, restored = round_trip(
            self.code, "src/Count.tsx", {"`共${total}条`": "count__total"}, {"count__total": "共{total}条"}
        )
        assert '<p><Trans i18nKey="count__total" values={{ total }} /></p>' in transformed
        assert "<p>{`共${total}条`}</p>" in restored
        assert "Trans" not in restored
        assert "react-i18next" not in restored


class TestHookDependencies:
    """Dependency arrays follow the translation variable."""

    def test_empty_array_round_trip(self):
        """``[]`` gains ``t`` and loses it again together with the hook."""
        _, transformed, restored = round_trip(
            CONFIRM, "src/Confirm.tsx", {"好的": "confirm__ok"}, {"confirm__ok": "好的"}
        )
        assert "useCallback(() => alert(t('confirm__ok')), [t])" in transformed
        assert "const { t } = useTranslation();" in transformed
        assert restored == CONFIRM

    def test_existing_dependencies_are_kept(self):
        """``t`` is appended after existing entries and removed on restore."""
        _, transformed, restored = round_trip(HOME, "src/Home.tsx", {"首页": "home__title"}, {"home__title": "首页"})
        assert "}, [page, t]);" in transformed
        assert restored == HOME


class TestHocRestore:
    """Unwrapping class components on restore."""

    def test_class_is_unwrapped(self):
        """The wrapper, renamed class, props type and destructuring all go away."""
        _, transformed, restored = round_trip(
            PROFILE,
            "src/Profile.tsx",
            {"登录": "profile__login", "提交": "profile__submit"},
            {"profile__login": "登录", "profile__submit": "提交"},
        )
        assert "withTranslation()(ProfileWithOutIntl)" in transformed
        assert "ProfileWithOutIntl" not in restored
        assert "withTranslation" not in restored
        assert "WithTranslation" not in restored
        assert "this.props" not in restored
        assert "class Profile extends React.Component {" in restored
        assert '<div title="登录">提交</div>' in restored
        assert "export default Profile;" in restored


class TestDefinedMessages:
    """``defineMessages`` registries resolve on restore."""

    code = (
        "import React from 'react';\n"
        "import { defineMessages, useIntl } from 'react-intl';\n\n"
        "const messages = defineMessages({\n"
        "  title: { id: 'page__title', defaultMessage: '标题' },\n"
        "});\n\n"
        "export function Page() {\n"
        "  const intl = useIntl();\n"
        "  return <h1>{intl.formatMessage(messages.title)}</h1>;\n"
        "}\n"
    )

    def test_registry_reference_is_restored(self):
        """``messages.title`` is looked up through the registry id."""
        restorer = build_adapter("react", "react-intl").get_restore_transformer()
        restored = restorer.transform("src/Page.tsx", {"page__title": "页面标题"}, text=self.code)
        assert "<h1>{'页面标题'}</h1>" in restored
        assert "formatMessage" not in restored
        assert "useIntl" not in restored

    def test_registry_default_is_used_without_locale_entry(self):
        """Without a locale entry the registered default message is used."""
        restorer = build_adapter("react", "react-intl").get_restore_transformer()
        restored = restorer.transform("src/Page.tsx", {}, text=self.code)
        assert "<h1>{'标题'}</h1>" in restored

    def test_registry_is_not_extracted(self):
        """Registered default messages are never extracted again."""
        records = build_adapter("react", "react-intl").get_text_extractor().extract_from_source(self.code, "src/Page.tsx")
        assert records == []
