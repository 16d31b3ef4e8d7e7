"""Tests for the continuation-token codec."""

import json

import pytest

from scripts.pagerduty_connector.errors import MalformedTokenError
from scripts.pagerduty_connector.pagination import (
    Bag,
    PageState,
    convert_page_token,
    next_page_token,
    parse_page_token,
)


class TestBag:
    def test_push_pop_order(self):
        bag = Bag()
        bag.push(PageState("team", "", "0"))
        bag.push(PageState("team", "T1", "50"))
        assert bag.current() == PageState("team", "T1", "50")
        assert bag.pop() == PageState("team", "T1", "50")
        assert bag.current() == PageState("team", "", "0")
        assert bag.pop() == PageState("team", "", "0")
        assert bag.current() is None
        assert bag.pop() is None

    def test_empty_bag_marshals_to_empty_token(self):
        assert Bag().marshal() == ""
        assert Bag().next_token("10") == ""

    def test_next_token_with_empty_page_pops_frame(self):
        bag = Bag()
        bag.push(PageState("team", "", "0"))
        bag.push(PageState("team", "T1", "50"))
        token = bag.next_token("")
        decoded = Bag.unmarshal(token)
        assert decoded.frames() == [PageState("team", "", "0")]

    def test_next_token_on_last_frame_completes_listing(self):
        bag = Bag()
        bag.push(PageState("user", "", "100"))
        assert bag.next_token("") == ""

    def test_unmarshal_empty_token(self):
        assert Bag.unmarshal("").current() is None


class TestParsePageToken:
    def test_empty_token_seeds_frame_at_zero(self):
        bag, offset = parse_page_token("", "role")
        assert offset == 0
        assert bag.frames() == [PageState("role", "", "")]

    def test_role_frame_decodes_offset(self):
        bag = Bag()
        bag.push(PageState(resource_type_id="role", resource_id="", token="50"))
        decoded, offset = parse_page_token(bag.marshal(), "role")
        assert offset == 50
        assert decoded.current() == PageState("role", "", "50")

    @pytest.mark.parametrize("frames,offset", [
        ([PageState("user", "", "")], 0),
        ([PageState("team", "", "0"), PageState("team", "T9", "")], 150),
        ([PageState("a", "1", "5"), PageState("b", "2", "7"), PageState("c", "3", "9")], 12345),
    ])
    def test_round_trip(self, frames, offset):
        bag = Bag()
        for frame in frames:
            bag.push(PageState(frame.resource_type_id, frame.resource_id, frame.token))
        token = next_page_token(bag, offset)

        decoded, decoded_offset = parse_page_token(token, "ignored")
        assert decoded_offset == offset
        assert decoded == bag

    def test_seed_not_used_when_token_present(self):
        bag = Bag()
        bag.push(PageState("team", "T1", "20"))
        decoded, offset = parse_page_token(bag.marshal(), "user", "U1")
        assert offset == 20
        assert decoded.current().resource_type_id == "team"


class TestMalformedTokens:
    @pytest.mark.parametrize("token", [
        "not json",
        "[1, 2, 3]",
        '{"current_state": "x"}',
        '{"states": [5], "current_state": {"token": "1"}}',
        '{"current_state": {"token": 7}}',
    ])
    def test_unparsable_token(self, token):
        with pytest.raises(MalformedTokenError):
            parse_page_token(token, "role")

    @pytest.mark.parametrize("page", ["abc", "-5", "1.5", " 3"])
    def test_non_numeric_offset(self, page):
        token = json.dumps({"states": [], "current_state": {"token": page}})
        with pytest.raises(MalformedTokenError):
            parse_page_token(token, "role")

    def test_malformed_token_is_value_error(self):
        with pytest.raises(ValueError):
            convert_page_token("x")

    def test_negative_next_offset(self):
        bag = Bag()
        bag.push(PageState("user"))
        with pytest.raises(ValueError):
            next_page_token(bag, -1)
