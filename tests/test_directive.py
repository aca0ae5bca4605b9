"""
Tests for case directive extraction from generated replies.
"""
from support_bot.services.directive import (
    CaseDirective,
    extract_directive,
    parse_directive,
    strip_code_fences,
)


class TestExtractDirective:
    """End-anchored directive recognition."""

    def test_plain_trailing_directive(self):
        raw = 'Here you go.\n{"createCase": true, "orderId": "A1", "productIndex": 0, "description": "broken screen"}'
        result = extract_directive(raw)

        assert result.clean_text == "Here you go."
        assert result.directive == CaseDirective(order_id="A1", product_index=0, description="broken screen")

    def test_fenced_directive(self):
        raw = (
            "Sorry about that, I have raised a case.\n"
            "```json\n"
            '{"createCase": true, "orderId": "A1", "productIndex": 1, '
            '"description": "Charger stopped working", "priority": "HIGH"}\n'
            "```"
        )
        result = extract_directive(raw)

        assert result.clean_text == "Sorry about that, I have raised a case."
        assert result.directive.order_id == "A1"
        assert result.directive.product_index == 1
        assert result.directive.priority == "high"

    def test_no_directive(self):
        result = extract_directive("Your order will arrive on Friday.")
        assert result.directive is None
        assert result.clean_text == "Your order will arrive on Friday."

    def test_mid_message_json_followed_by_prose_is_ignored(self):
        raw = (
            'A directive looks like {"createCase": true, "orderId": "A1", "productIndex": 0, '
            '"description": "x"} but I am not creating one. Anything else?'
        )
        result = extract_directive(raw)

        assert result.directive is None
        assert result.clean_text == raw

    def test_malformed_json_is_not_a_directive(self):
        raw = 'Done.\n{"createCase": true, "orderId": "A1", "productIndex": 0, "description": }'
        result = extract_directive(raw)

        assert result.directive is None
        assert result.clean_text == raw

    def test_invalid_directive_is_still_stripped(self):
        raw = 'I can help.\n{"createCase": true, "orderId": "A1", "description": "missing index"}'
        result = extract_directive(raw)

        assert result.directive is None
        assert result.clean_text == "I can help."

    def test_trailing_object_without_create_case_is_kept(self):
        raw = 'Your order summary:\n{"orderId": "A1", "status": "shipped"}'
        result = extract_directive(raw)

        assert result.directive is None
        assert result.clean_text == raw

    def test_nested_braces_in_description(self):
        raw = 'Noted.\n{"createCase": true, "orderId": "A1", "productIndex": 0, "description": "box said {fragile}"}'
        result = extract_directive(raw)

        assert result.directive.description == "box said {fragile}"
        assert result.clean_text == "Noted."

    def test_empty_reply(self):
        result = extract_directive("")
        assert result.clean_text == ""
        assert result.directive is None


class TestParseDirective:

    def test_requires_create_case_true(self):
        assert parse_directive({"createCase": False, "orderId": "A1", "productIndex": 0, "description": "x"}) is None
        assert parse_directive({"createCase": "true", "orderId": "A1", "productIndex": 0, "description": "x"}) is None

    def test_digit_string_index_is_accepted(self):
        directive = parse_directive({"createCase": True, "orderId": "A1", "productIndex": "1", "description": "x"})
        assert directive.product_index == 1

    def test_boolean_index_is_rejected(self):
        assert parse_directive({"createCase": True, "orderId": "A1", "productIndex": True, "description": "x"}) is None

    def test_blank_description_is_rejected(self):
        assert parse_directive({"createCase": True, "orderId": "A1", "productIndex": 0, "description": "  "}) is None

    def test_unknown_priority_is_dropped(self):
        directive = parse_directive({
            "createCase": True, "orderId": "A1", "productIndex": 0,
            "description": "x", "priority": "urgent",
        })
        assert directive.priority is None

    def test_numeric_order_id_becomes_string(self):
        directive = parse_directive({"createCase": True, "orderId": 1001, "productIndex": 0, "description": "x"})
        assert directive.order_id == "1001"


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences(None) == ""
