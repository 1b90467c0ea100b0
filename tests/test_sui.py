"""Tests for the Sui JSON-RPC transport, with a mocked HTTP session."""

import base64
from unittest import mock

import pytest
import requests

from versionfs import bcs
from versionfs.errors import LedgerUnavailable, TransactionRejected
from versionfs.ledger.sui import SuiRpcTransport, normalize_effects, normalize_inspect
from versionfs.ledger.transport import MoveCall, pure_string

SENDER = "0x" + "aa" * 32
CALL = MoveCall("0x1234", "create_repository", (pure_string("demo"),))


class StubWallet:
    address = SENDER

    def __init__(self):
        self.built = []

    def build(self, call, *, inspect=False):
        self.built.append((call, inspect))
        return b"tx-bytes"

    def sign(self, tx_bytes):
        return "sig"


def rpc_response(body, status=200):
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = "error"
    resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def transport(session):
    return SuiRpcTransport("https://rpc.example", StubWallet(), timeout=2.0,
                           session=session)


class TestNormalize:
    def test_effects(self):
        block = {
            "digest": "D1",
            "effects": {"status": {"status": "success"}},
            "events": [{"type": "0x1::version_fs::NewCommit", "parsedJson": {}}],
            "objectChanges": [{"type": "created", "objectId": "0x9"}],
        }
        effects = normalize_effects("D1", block)
        assert effects["status"] == "success"
        assert effects["error"] is None
        assert len(effects["events"]) == 1
        assert effects["objectChanges"][0]["objectId"] == "0x9"

    def test_failed_effects(self):
        block = {"effects": {"status": {"status": "failure", "error": "MoveAbort 3"}}}
        effects = normalize_effects("D2", block)
        assert effects["digest"] == "D2"
        assert effects["status"] == "failure"
        assert effects["error"] == "MoveAbort 3"
        assert effects["events"] == []

    def test_inspect_return_values(self):
        raw = list(bcs.encode_value(bcs.STRING, "hi"))
        result = normalize_inspect({
            "effects": {"status": {"status": "success"}},
            "results": [{"returnValues": [[raw, "0x1::string::String"]]}],
        })
        assert result.ok
        assert result.return_values == [(b"\x02hi", "0x1::string::String")]

    def test_inspect_abort(self):
        result = normalize_inspect(
            {"effects": {"status": {"status": "failure", "error": "EBranchNotFound"}}}
        )
        assert not result.ok
        assert result.aborted
        assert result.error == "EBranchNotFound"

    def test_inspect_error_field(self):
        assert normalize_inspect({"error": "bad"}).error == "bad"

    def test_inspect_no_results(self):
        result = normalize_inspect({"results": []})
        assert not result.ok
        assert not result.aborted


class TestTransport:
    def test_sender_is_wallet_address(self, transport):
        assert transport.sender == SENDER

    def test_execute(self, transport, session):
        session.post.return_value = rpc_response({"result": {"digest": "D1"}})
        assert transport.execute(CALL) == "D1"
        payload = session.post.call_args.kwargs["json"]
        assert payload["method"] == "sui_executeTransactionBlock"
        assert payload["params"][0] == base64.b64encode(b"tx-bytes").decode()
        assert payload["params"][1] == ["sig"]

    def test_execute_rejected(self, transport, session):
        session.post.return_value = rpc_response(
            {"error": {"code": -32002, "message": "Insufficient gas"}}
        )
        with pytest.raises(TransactionRejected, match="Insufficient gas"):
            transport.execute(CALL)

    def test_execute_unreachable(self, transport, session):
        session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(LedgerUnavailable):
            transport.execute(CALL)

    def test_http_error(self, transport, session):
        session.post.return_value = rpc_response({}, status=502)
        with pytest.raises(LedgerUnavailable, match="502"):
            transport.execute(CALL)

    def test_effects_not_indexed(self, transport, session):
        session.post.return_value = rpc_response({"error": {
            "message": "Could not find the referenced transaction [D1]"
        }})
        assert transport.effects("D1") is None

    def test_effects_ready(self, transport, session):
        session.post.return_value = rpc_response({"result": {
            "digest": "D1",
            "effects": {"status": {"status": "success"}},
            "events": [],
            "objectChanges": [],
        }})
        assert transport.effects("D1")["status"] == "success"

    def test_effects_other_error(self, transport, session):
        session.post.return_value = rpc_response({"error": {"message": "boom"}})
        with pytest.raises(LedgerUnavailable):
            transport.effects("D1")

    def test_inspect(self, transport, session):
        raw = list(bcs.encode_value(bcs.U64, 3))
        session.post.return_value = rpc_response({"result": {
            "effects": {"status": {"status": "success"}},
            "results": [{"returnValues": [[raw, "u64"]]}],
        }})
        result = transport.inspect(CALL)
        raw_value, tag = result.return_values[0]
        assert bcs.decode_value(tag, raw_value) == 3
        payload = session.post.call_args.kwargs["json"]
        assert payload["method"] == "sui_devInspectTransactionBlock"
        assert payload["params"][0] == SENDER
        assert transport.wallet.built[-1] == (CALL, True)

    def test_inspect_rpc_error_is_not_an_abort(self, transport, session):
        session.post.return_value = rpc_response(
            {"error": {"code": -32050, "message": "429 Too Many Requests"}}
        )
        result = transport.inspect(CALL)
        assert not result.ok
        assert not result.aborted
        assert "429" in result.error
