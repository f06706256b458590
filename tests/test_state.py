"""
Tests for flow-tagged OAuth state values.
"""

import pytest

from connectors.state import FlowKind, decode_flow, encode_state


class TestEncodeState:
    def test_tagged_with_flow(self):
        assert encode_state(FlowKind.LOGIN).startswith("login_")
        assert encode_state(FlowKind.CONNECT).startswith("connect_")

    def test_values_are_unique(self):
        states = {encode_state(FlowKind.LOGIN) for _ in range(200)}
        assert len(states) == 200

    def test_nonce_is_long_enough(self):
        _tag, _sep, nonce = encode_state(FlowKind.CONNECT).partition("_")
        assert len(nonce) >= 32


class TestDecodeFlow:
    @pytest.mark.parametrize("flow", list(FlowKind))
    def test_round_trip(self, flow):
        assert decode_flow(encode_state(flow)) is flow

    @pytest.mark.parametrize(
        "state",
        [None, "", "connect", "garbage", "admin_abc", "CONNECT_abc", "_abc"],
    )
    def test_malformed_defaults_to_login(self, state):
        assert decode_flow(state) is FlowKind.LOGIN

    def test_nonce_may_contain_underscores(self):
        assert decode_flow("connect_a_b_c") is FlowKind.CONNECT
