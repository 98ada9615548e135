from __future__ import annotations

import json

import pytest

from generation.validator import (
    SummaryValidator,
    extract_json_object,
    question_mentions_unit,
    validate_item_payload,
)
from utils.exceptions import ItemValidationError


def _payload(**overrides) -> dict:
    data = {
        "question": "How tall is Mount Everest in meters?",
        "answer": 8849,
        "unit": "m",
        "category": "geography",
        "summary": "height of Mount Everest",
        "sourceName": "National Geographic",
        "sourceUrl": "https://example.org/everest",
    }
    data.update(overrides)
    return data


def test_extract_json_from_commentary_and_fences() -> None:
    text = "Sure! Here it is:\n```json\n" + json.dumps(_payload()) + "\n```\nLet me know if you need more."

    data = extract_json_object(text)

    assert data["answer"] == 8849
    assert data["unit"] == "m"


def test_extract_skips_unbalanced_braces_before_object() -> None:
    text = 'Use {curly braces} like this: {"question": "a {nested} value", "answer": 1}'

    data = extract_json_object(text)

    assert data == {"question": "a {nested} value", "answer": 1}


def test_extract_returns_first_object() -> None:
    data = extract_json_object('{"a": {"b": 2}} and then {"c": 3}')

    assert data == {"a": {"b": 2}}


@pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]", '{"unterminated": '])
def test_extract_raises_without_object(text: str) -> None:
    with pytest.raises(ItemValidationError):
        extract_json_object(text)


def test_valid_payload_passes() -> None:
    data = _payload()
    assert validate_item_payload(data) is data


def test_float_answer_passes() -> None:
    validate_item_payload(_payload(answer=1.5, unit="km", question="How long is the bridge in kilometers?"))


@pytest.mark.parametrize("field", ["question", "answer", "unit", "category", "summary", "sourceName", "sourceUrl"])
def test_missing_field_is_rejected(field: str) -> None:
    data = _payload()
    del data[field]

    with pytest.raises(ItemValidationError) as exc_info:
        validate_item_payload(data)

    assert exc_info.value.field == field


@pytest.mark.parametrize("answer", ["8849", True, None, [8849], float("nan")])
def test_non_numeric_answer_is_rejected(answer) -> None:
    with pytest.raises(ItemValidationError) as exc_info:
        validate_item_payload(_payload(answer=answer))

    assert exc_info.value.field == "answer"


def test_empty_string_field_is_rejected() -> None:
    with pytest.raises(ItemValidationError):
        validate_item_payload(_payload(category="  "))


def test_oversized_summary_is_rejected() -> None:
    with pytest.raises(ItemValidationError):
        validate_item_payload(_payload(summary="x " * 150))


def test_question_without_unit_is_rejected() -> None:
    with pytest.raises(ItemValidationError) as exc_info:
        validate_item_payload(_payload(question="How tall is Mount Everest?"))

    assert exc_info.value.field == "question"


def test_unit_check_can_be_disabled() -> None:
    validate_item_payload(_payload(question="How tall is Mount Everest?"), require_unit_in_question=False)


@pytest.mark.parametrize(
    "question, unit",
    [
        ("How many kilometers long is the Nile?", "km"),
        ("What is the population of Tokyo in people?", "people"),
        ("How old was Mozart when he died, in years?", "years"),
        ("What percentage of Earth is water?", "%"),
        ("What is the boiling point of water in degrees Celsius?", "°C"),
        ("How fast is a cheetah in km/h?", "km/h"),
    ],
)
def test_question_mentions_unit(question: str, unit: str) -> None:
    assert question_mentions_unit(question, unit) is True


def test_question_does_not_mention_unit() -> None:
    assert question_mentions_unit("How tall is the Eiffel Tower?", "m") is False


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("height of Mount Everest", "height of Mount Everest"),
        ('"speed of sound in air"', "speed of sound in air"),
        ("  number of bones in the human body  ", "number of bones in the human body"),
    ],
)
def test_summary_clean_accepts(raw: str, expected: str) -> None:
    assert SummaryValidator().clean(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "too short",
        "speed light",
        "population of the",
        "distance between Earth and...",
        '{"summary": "height of Mount Everest"}',
        "word " * 60,
    ],
)
def test_summary_clean_rejects(raw) -> None:
    assert SummaryValidator().clean(raw) is None


def test_summary_word_limit() -> None:
    ten = "average depth in meters of the deepest ocean trench known"
    eleven = ten + " today"

    assert SummaryValidator().clean(ten) == ten
    assert SummaryValidator().clean(eleven) is None
    assert SummaryValidator(max_words=12).clean(eleven) == eleven


def test_wordy_payload_summary_is_rejected() -> None:
    summary = "average depth in meters of the deepest ocean trench known today"

    with pytest.raises(ItemValidationError) as exc_info:
        validate_item_payload(_payload(summary=summary))

    assert exc_info.value.field == "summary"
    validate_item_payload(_payload(summary=summary), max_summary_words=11)
