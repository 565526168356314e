import pytest

from app.backend.errors import MalformedModelOutput
from app.backend.extraction import (
    apply_prefill,
    clamp_score,
    extract_delimited_list,
    extract_list,
    extract_phase_status,
    extract_tag,
    parse_coaching_reply,
    parse_json_with_prefill,
    strip_code_fences,
    strip_tags,
)


def test_extract_tag_returns_trimmed_first_match():
    text = "<x>  erste\nZeile </x> <x>zweite</x>"
    assert extract_tag(text, "x") == "erste\nZeile"


@pytest.mark.parametrize("value", ["", "plain text", "a b c  "])
def test_extract_tag_round_trips_tag_free_text(value):
    assert extract_tag(f"<x>{value}</x>", "x") == value.strip()


def test_extract_tag_missing_or_empty_input():
    assert extract_tag("no tags here", "x") is None
    assert extract_tag(None, "x") is None
    assert extract_tag("", "x") is None


def test_extract_list_reads_items_inside_container():
    text = "<missing><item> Persona </item><item></item><item>Zahlen</item></missing>"
    assert extract_list(text, "missing") == ["Persona", "Zahlen"]
    assert extract_list(text, "absent") == []


def test_extract_delimited_list_drops_empty_tokens():
    assert extract_delimited_list("<m>a, ,b ,c,</m>", "m") == ["a", "b", "c"]
    assert extract_delimited_list("<m></m>", "m") == []


def test_strip_tags_keeps_inner_text_and_is_idempotent():
    assert strip_tags("<b>Hallo</b> <i>Welt</i>") == "Hallo Welt"
    assert strip_tags("Hallo Welt") == "Hallo Welt"
    assert strip_tags("Score < 5 und 7 > 3") == "Score < 5 und 7 > 3"


def test_strip_code_fences_with_and_without_language():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_apply_prefill_prepends_unless_echoed():
    prefill = '{\n  "overallScore":'
    assert apply_prefill(" 42}", prefill) == prefill + " 42}"
    assert apply_prefill('{"overallScore": 42}', prefill) == '{"overallScore": 42}'
    assert apply_prefill("text", None) == "text"


def test_parse_json_with_prefill_restores_seed_fragment():
    parsed = parse_json_with_prefill(' 42,\n  "strengths": []\n}', '{\n  "overallScore":')
    assert parsed == {"overallScore": 42, "strengths": []}


def test_parse_json_with_prefill_repairs_surrounding_chatter():
    parsed = parse_json_with_prefill('Hier ist das Ergebnis: {"score": 80} Viel Erfolg!')
    assert parsed == {"score": 80}


@pytest.mark.parametrize("raw", ["kein json", "[1, 2, 3]", '{"a": '])
def test_parse_json_with_prefill_raises_on_garbage(raw):
    with pytest.raises(MalformedModelOutput):
        parse_json_with_prefill(raw)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("87", 87),
        (150, 100),
        (-3, 0),
        ("abc", 50),
        (None, 50),
        (True, 50),
        ("72.6", 73),
        ("inf", 50),
        ("Infinity", 50),
        ("1e999", 50),
        ("NaN", 50),
        (float("inf"), 50),
        (float("nan"), 50),
    ],
)
def test_clamp_score(value, expected):
    assert clamp_score(value) == expected


def test_parse_coaching_reply_uses_response_block():
    raw = (
        "<thinking>intern</thinking><analysis>notiz</analysis>"
        "<response>\n  Wer genau ist deine <b>Zielgruppe</b>?  \n</response>"
    )
    reply = parse_coaching_reply(raw)
    assert reply.visible == "Wer genau ist deine Zielgruppe?"
    assert reply.has_xml_structure is True
    assert reply.thinking == "intern"
    assert reply.analysis == "notiz"


def test_parse_coaching_reply_without_response_strips_tags():
    reply = parse_coaching_reply("Gute Antwort. <em>Nenne</em> mir eine Zahl.")
    assert reply.visible == "Gute Antwort. Nenne mir eine Zahl."
    assert reply.has_xml_structure is False


def test_parse_coaching_reply_hides_internal_blocks_without_response():
    reply = parse_coaching_reply("<thinking>geheim</thinking>Wie viele Kunden hast du?")
    assert reply.visible == "Wie viele Kunden hast du?"
    assert reply.thinking == "geheim"


def test_extract_phase_status_reads_block():
    raw = (
        "<phase_status>\n<complete>true</complete>\n<completion_score>92</completion_score>\n"
        "<missing_elements>Persona, Zahlen</missing_elements>\n</phase_status>"
    )
    status = extract_phase_status(raw)
    assert status.complete is True
    assert status.completion_score == 92
    assert status.missing_elements == ["Persona", "Zahlen"]


def test_extract_phase_status_item_list_and_clamping():
    raw = (
        "<phase_status><complete>false</complete><completion_score>140</completion_score>"
        "<missing_elements><item>Hook</item></missing_elements></phase_status>"
    )
    status = extract_phase_status(raw)
    assert status.complete is False
    assert status.completion_score == 100
    assert status.missing_elements == ["Hook"]


def test_extract_phase_status_keyword_fallback():
    complete = extract_phase_status("Super! Phase abgeschlossen, weiter geht's.")
    assert (complete.complete, complete.completion_score) == (True, 85)

    pending = extract_phase_status("Erzähl mir mehr über deine Kunden.")
    assert (pending.complete, pending.completion_score) == (False, 50)
    assert pending.missing_elements == []


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_parse_json_rejects_non_finite_numbers(constant):
    with pytest.raises(MalformedModelOutput):
        parse_json_with_prefill(f' {constant}, "fatalErrors": []}}', '{"overallScore":')


def test_phase_status_with_infinite_score_uses_default():
    status = extract_phase_status(
        "<phase_status><complete>false</complete>"
        "<completion_score>Infinity</completion_score></phase_status>"
    )
    assert status.complete is False
    assert status.completion_score == 50
