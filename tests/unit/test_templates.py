"""
Unit tests for message template rendering.
"""

from washq.notifications.templates import format_template


class TestFormatTemplate:
    def test_replaces_placeholders(self):
        message = format_template(
            "Hi {{customer_name}}, token {{token_number}}",
            {"customer_name": "Dana", "token_number": "20260208-A3K9M2"},
        )

        assert message == "Hi Dana, token 20260208-A3K9M2"

    def test_repeated_placeholder(self):
        assert format_template("{{a}} and {{a}}", {"a": "x"}) == "x and x"

    def test_unknown_placeholder_left_intact(self):
        assert format_template("Ready at {{eta}}", {}) == "Ready at {{eta}}"

    def test_values_are_stringified(self):
        assert format_template("Total {{total}}", {"total": 35.5}) == "Total 35.5"

    def test_whitespace_inside_braces(self):
        assert format_template("Hi {{ name }}", {"name": "Sam"}) == "Hi Sam"

    def test_none_renders_empty(self):
        assert format_template("Plate: {{plate}}", {"plate": None}) == "Plate: "
