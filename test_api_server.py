#!/usr/bin/env python3
"""
Test the REST API with Flask's test client
"""
import pytest

from api_server import create_app
from encryption_controller import DEMO_COMMITMENT
from tpke import parse_envelope

PK_HEX = 'a5aa188d1c60a7173e59fe49b68b969999e70aa4c1acb76c5a3dd2ad0d19a859b1a2759e3995ce1ceccdea5a57fbf637'
EXPECTED_PK_HEX = '84c7a302bd8fdd14c297c82f57db8788038489c8325574dad73cc4ceea2f30c673fe3558b3ef5df28d87f4ef4fd18c36'


@pytest.fixture
def client(tmp_path):
    app = create_app(keys_dir=str(tmp_path))
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    resp = client.get('/api/health')
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


def test_scaler(client):
    resp = client.post('/api/scaler', json={"n_parties": 4, "threshold": 2})
    assert resp.status_code == 200
    assert resp.get_json()["scaler"] == "6"

    resp = client.post('/api/scaler', json={"n_parties": 7})
    assert resp.get_json()["threshold"] == 5

    resp = client.post('/api/scaler', json={"n_parties": 3, "threshold": 5})
    assert resp.status_code == 400
    assert client.post('/api/scaler', json={}).status_code == 400


def test_register_and_encrypt(client):
    resp = client.post('/api/keys', json={
        "commitment": DEMO_COMMITMENT.hex(),
        "n_parties": 7,
        "session_id": "dkg_7"
    })
    assert resp.status_code == 200
    assert resp.get_json()["public_key"] == EXPECTED_PK_HEX

    resp = client.post('/api/encrypt', json={"session_id": "dkg_7", "message_hex": "0x" + "ab" * 40})
    data = resp.get_json()
    assert resp.status_code == 200 and data["success"]
    encrypted_key, encrypted_msg = parse_envelope(bytes.fromhex(data["envelope"]))
    assert len(encrypted_msg) == 48

    resp = client.get('/api/sessions')
    assert resp.get_json()["count"] == 1
    resp = client.get('/api/sessions/dkg_7')
    assert resp.get_json()["session_info"]["metadata"]["threshold"] == 5


def test_register_public_key(client):
    resp = client.post('/api/keys', json={"public_key": PK_HEX, "session_id": "raw"})
    assert resp.status_code == 200
    assert resp.get_json()["public_key"] == PK_HEX


def test_bad_requests(client):
    assert client.post('/api/keys', json={}).status_code == 400
    assert client.post('/api/keys', json={"commitment": "00" * 127, "n_parties": 7}).status_code == 400
    assert client.post('/api/keys', json={"public_key": "00" * 48}).status_code == 400
    assert client.post('/api/keys', json={"public_key": "not hex"}).status_code == 400

    client.post('/api/keys', json={"public_key": PK_HEX, "session_id": "raw"})
    assert client.post('/api/encrypt', json={"session_id": "raw", "message_hex": ""}).status_code == 400
    assert client.post('/api/encrypt', json={"session_id": "nope", "message_hex": "00"}).status_code == 404
    assert client.get('/api/sessions/nope').status_code == 404
    assert client.get('/api/unknown').status_code == 404


def test_scaler_search_is_bounded(client):
    # C(40, 27) quorums would keep a request thread busy for hours
    resp = client.post('/api/scaler', json={"n_parties": 40})
    assert resp.status_code == 400
    assert "quorums" in resp.get_json()["error"]

    assert client.post('/api/scaler', json={"n_parties": 1000, "threshold": 1}).status_code == 400
    resp = client.post('/api/keys', json={"commitment": DEMO_COMMITMENT.hex(), "n_parties": 40})
    assert resp.status_code == 400


def test_wrong_json_types(client):
    assert client.post('/api/scaler', json={"n_parties": None}).status_code == 400
    assert client.post('/api/scaler', json={"n_parties": "7"}).status_code == 400
    assert client.post('/api/scaler', json={"n_parties": 7, "threshold": [5]}).status_code == 400
    assert client.post('/api/scaler', json=[7]).status_code == 400
    assert client.post('/api/keys', json={"public_key": PK_HEX, "session_id": ["x"]}).status_code == 400
    assert client.post('/api/keys', json={"commitment": DEMO_COMMITMENT.hex(),
                                          "n_parties": None}).status_code == 400
    assert client.post('/api/encrypt', json={"session_id": ["x"], "message_hex": "00"}).status_code == 400
