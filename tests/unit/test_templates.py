"""
Unit tests for placeholder interpolation.
"""
from automation_engine.engine.templates import interpolate, interpolate_value


class TestInterpolate:

    def test_unknown_placeholder_left_verbatim(self):
        assert interpolate("Hello {{user.name}}", {}) == "Hello {{user.name}}"

    def test_known_placeholder_substituted(self):
        assert interpolate("Hi {{user.name}}", {"user": {"name": "Ada"}}) == "Hi Ada"

    def test_mixed_known_and_unknown(self):
        text = interpolate("{{a}} and {{b.c}}", {"a": 1})
        assert text == "1 and {{b.c}}"

    def test_whitespace_inside_braces(self):
        assert interpolate("{{ user.email }}", {"user": {"email": "a@b.com"}}) == "a@b.com"

    def test_none_renders_empty(self):
        assert interpolate("[{{note}}]", {"note": None}) == "[]"

    def test_text_without_placeholders_unchanged(self):
        assert interpolate("plain {text}", {"text": "x"}) == "plain {text}"


class TestInterpolateValue:

    def test_nested_structures(self):
        config = {
            "to": "{{user.email}}",
            "cc": ["{{manager.email}}", "static@example.com"],
            "retries": 3,
        }
        result = interpolate_value(config, {"user": {"email": "a@b.com"}})
        assert result == {
            "to": "a@b.com",
            "cc": ["{{manager.email}}", "static@example.com"],
            "retries": 3,
        }

    def test_original_not_mutated(self):
        config = {"to": "{{x}}"}
        interpolate_value(config, {"x": "y"})
        assert config == {"to": "{{x}}"}
