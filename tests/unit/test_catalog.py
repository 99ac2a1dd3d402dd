import pytest

from whitelist.catalog import DEFAULT_CATALOG, Catalog, Question, exact_digits, min_length


def test_default_catalog_order_and_identifier():
    assert DEFAULT_CATALOG.keys() == [
        "name",
        "origin",
        "survival",
        "trust",
        "limits",
        "steam_id",
        "backstory",
    ]
    identifiers = [q.key for q in DEFAULT_CATALOG if q.identifier]
    assert identifiers == ["steam_id"]
    assert DEFAULT_CATALOG.at(7) is None
    assert DEFAULT_CATALOG.get("backstory").max_length == 200


def test_empty_and_whitespace_rejected():
    question = DEFAULT_CATALOG.get("origin")
    assert question.check("")[1]
    assert question.check("   \n ")[1]
    assert question.check(None)[1]


def test_answer_is_trimmed():
    answer, reason = DEFAULT_CATALOG.get("origin").check("  a village  ")
    assert reason is None
    assert answer == "a village"


def test_too_long_reports_limit():
    answer, reason = DEFAULT_CATALOG.get("backstory").check("x" * 201)
    assert answer is None
    assert "200" in reason
    assert DEFAULT_CATALOG.get("backstory").check("x" * 200)[1] is None


ARABIC_INDIC_STEAM_ID = "".join(chr(0x660 + int(c)) for c in "76561198000000001")
FULLWIDTH_STEAM_ID = "".join(chr(0xFF10 + int(c)) for c in "76561198000000001")


@pytest.mark.parametrize(
    "value",
    ["7656119800000000", "765611980000000012", "7656119800000000a", "abc", ARABIC_INDIC_STEAM_ID, FULLWIDTH_STEAM_ID],
)
def test_steam_id_rejects_wrong_shape(value):
    answer, reason = DEFAULT_CATALOG.get("steam_id").check(value)
    assert answer is None
    assert "SteamID64" in reason


def test_steam_id_accepts_seventeen_digits():
    assert DEFAULT_CATALOG.get("steam_id").check(" 76561198000000001 ") == ("76561198000000001", None)


def test_validators_in_isolation():
    assert exact_digits(3)("123") is None
    assert exact_digits(3)("12") is not None
    assert min_length(2)("a") is not None
    assert min_length(2)("ab") is None
    assert exact_digits(3)("\u0661\u0662\u0663") is not None


def test_catalog_rejects_duplicate_keys_and_two_identifiers():
    q = Question(key="a", label="A", prompt="?", max_length=10)
    with pytest.raises(ValueError):
        Catalog([q, q])
    ids = [
        Question(key="x", label="X", prompt="?", max_length=10, identifier=True),
        Question(key="y", label="Y", prompt="?", max_length=10, identifier=True),
    ]
    with pytest.raises(ValueError):
        Catalog(ids)
