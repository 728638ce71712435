"""Tests for placeholder naming and rebuilding."""

from i18nkit.messages import (
    build_string_or_template,
    create_message_with_options,
    fill_placeholders,
    format_values_mapping,
    placeholder_names,
    variable_name_from_expression,
)


class TestVariableNames:
    """Readable names derived from interpolated expressions."""

    def test_last_meaningful_segment(self):
        """Trailing property accessors like ``length`` are skipped."""
        assert variable_name_from_expression("list.length") == "list"
        assert variable_name_from_expression("user.name") == "name"

    def test_calls_are_ignored(self):
        """Call arguments do not leak into the name."""
        assert variable_name_from_expression("price.toFixed(2)") == "price"

    def test_optional_chaining(self):
        """Optional chaining is read like plain member access."""
        assert variable_name_from_expression("user?.profile?.email") == "email"


class TestMessages:
    """Template literals turned into messages and back."""

    def test_create_message(self):
        """Each interpolation gets a named placeholder."""
        message, values = create_message_with_options("`共 ${list.length} 条，${user.name}`", ["list.length", "user.name"])
        assert message == "共 {list} 条，{name}"
        assert values == {"list": "list.length", "name": "user.name"}

    def test_repeated_expression_gets_distinct_names(self):
        """N interpolations always give N placeholders."""
        message, values = create_message_with_options("`${count} / ${count}`", ["count", "count"])
        assert placeholder_names(message) == ["count", "count1"]
        assert values == {"count": "count", "count1": "count"}

    def test_rebuild_is_the_inverse(self):
        """Rebuilding restores the original template literal."""
        original = "`共 ${list.length} 条，${user.name}`"
        message, values = create_message_with_options(original, ["list.length", "user.name"])
        assert build_string_or_template(message, values) == original

    def test_plain_text_becomes_string(self):
        """Without values a quoted string is produced."""
        assert build_string_or_template("你好") == "'你好'"

    def test_mismatch_degrades_to_raw_text(self, reporter):
        """A placeholder without a matching value restores the raw message."""
        assert build_string_or_template("{a} {b}", {"a": "x"}, reporter=reporter) == "'{a} {b}'"
        assert reporter.warnings

    def test_values_mapping_uses_shorthand(self):
        """Names equal to their expression use shorthand properties."""
        assert format_values_mapping({"count": "count", "name": "user.name"}) == "{ count, name: user.name }"

    def test_fill_placeholders_for_templates(self):
        """Vue templates receive mustache interpolations."""
        assert fill_placeholders("共 {n} 条", {"n": "list.length"}) == "共 {{ list.length }} 条"
