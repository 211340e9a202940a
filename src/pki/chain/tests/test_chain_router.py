"""
测试 chain/router.py 与 chain/services.py。
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import patch
from cryptography import x509

from src.pki.chain.router import router
from src.pki.der.core import der_to_pem
from src.pki.trust.schemas import PoolLoadResult


app = FastAPI()
app.include_router(router)

client = TestClient(app)


def _empty_pool() -> PoolLoadResult:
    return PoolLoadResult()


def test_resolve_with_request_pool(pki_ders):
    """请求中附带的候选证书参与构建"""
    root, intermediate, user = pki_ders
    with patch("src.pki.chain.services.load_configured_pool", side_effect=_empty_pool):
        response = client.post(
            "/chain/resolve",
            json={
                "signer_certs_pem": [der_to_pem(user)],
                "pool_pem": [der_to_pem(intermediate) + der_to_pem(root)],
            },
        )
    assert response.status_code == 200
    body = response.json()
    assert body["complete"] is True
    assert body["subjects"] == [
        "C=BR,O=Test Org,CN=Test User",
        "C=BR,O=Test Org,CN=Test Intermediate CA",
        "C=BR,O=Test Org,CN=Test Root CA",
    ]
    assert x509.load_pem_x509_certificate(body["chain"][2].encode("utf-8")).serial_number == 1


def test_resolve_with_configured_pool(pki_ders):
    root, intermediate, user = pki_ders
    pool = PoolLoadResult(certificates=[x509.load_der_x509_certificate(d) for d in (root, intermediate)])
    with patch("src.pki.chain.services.load_configured_pool", return_value=pool):
        response = client.post("/chain/resolve", json={"signer_certs_pem": [der_to_pem(user)]})
    assert response.status_code == 200
    assert len(response.json()["chain"]) == 3


def test_resolve_incomplete_chain(pki_ders):
    with patch("src.pki.chain.services.load_configured_pool", side_effect=_empty_pool):
        response = client.post(
            "/chain/resolve",
            json={"signer_certs_pem": [der_to_pem(pki_ders[2])], "max_depth": 3},
        )
    assert response.status_code == 200
    assert response.json()["complete"] is False
    assert len(response.json()["chain"]) == 1


def test_resolve_empty_signers_returns_400():
    response = client.post("/chain/resolve", json={"signer_certs_pem": []})
    assert response.status_code == 400
    assert "signer_certs_pem" in response.json()["detail"]


def test_resolve_invalid_pool_pem_returns_400(pki_ders):
    bad = "-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n"
    response = client.post(
        "/chain/resolve",
        json={"signer_certs_pem": [der_to_pem(pki_ders[2])], "pool_pem": [bad]},
    )
    assert response.status_code == 400
    assert "pool_pem" in response.json()["detail"]


def test_resolve_missing_trust_store_returns_500(pki_ders):
    with patch(
        "src.pki.chain.services.load_configured_pool",
        side_effect=RuntimeError("密钥库未找到: /nowhere.bks"),
    ):
        response = client.post("/chain/resolve", json={"signer_certs_pem": [der_to_pem(pki_ders[2])]})
    assert response.status_code == 500
    assert "密钥库未找到" in response.json()["detail"]


def test_resolve_validation_error():
    response = client.post("/chain/resolve", json={"pool_pem": []})
    assert response.status_code == 422


def test_resolve_pool_pem_with_invalid_version_returns_400(pki_ders):
    bad = pki_ders[1].replace(bytes.fromhex("a003020102"), bytes.fromhex("a003020103"), 1)
    response = client.post(
        "/chain/resolve",
        json={"signer_certs_pem": [der_to_pem(pki_ders[2])], "pool_pem": [der_to_pem(bad)]},
    )
    assert response.status_code == 400
    assert "pool_pem" in response.json()["detail"]
