import pytest

from bot.routing import NOTE_INPUT_ID, Route, build_custom_id, modal_value, parse_custom_id


def test_build_and_parse_decision():
    custom_id = build_custom_id(Route.DECISION, "approve", "abc123")
    assert custom_id == "wl:decision:approve:abc123"
    match = parse_custom_id(custom_id)
    assert match.route == Route.DECISION
    assert match.kind == "button"
    assert match.args == ("approve", "abc123")


def test_parse_panel_buttons():
    assert parse_custom_id("wl:start").route == Route.START
    assert parse_custom_id("wl:resume").args == ()
    assert parse_custom_id("wl:note:reject:abc").kind == "modal"


@pytest.mark.parametrize(
    "custom_id",
    [None, "", "other:start", "wl", "wl:unknown", "wl:start:extra", "wl:decision:approve", "wl:decision::x"],
)
def test_parse_rejects_foreign_or_malformed(custom_id):
    assert parse_custom_id(custom_id) is None


def test_build_validates_arity_and_parts():
    with pytest.raises(ValueError):
        build_custom_id(Route.DECISION, "approve")
    with pytest.raises(ValueError):
        build_custom_id(Route.NOTE, "reject", "a:b")
    with pytest.raises(ValueError):
        build_custom_id(Route.START, "")


def test_modal_value():
    data = {
        "custom_id": "wl:note:reject:abc",
        "components": [
            {"type": 1, "components": [{"type": 4, "custom_id": NOTE_INPUT_ID, "value": "too short"}]},
        ],
    }
    assert modal_value(data) == "too short"
    assert modal_value({"components": []}) is None
    assert modal_value(None) is None
