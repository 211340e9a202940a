"""
测试共享的密钥与证书夹具。RSA 密钥生成较慢，按会话复用。
"""

import pytest

from src.pki.crypto.core import RsaCrypto
from src.pki.factory.core import CertificateFactory

ROOT_DN = "CN=Test Root CA, O=Test Org, C=BR"
INTERMEDIATE_DN = "CN=Test Intermediate CA, O=Test Org, C=BR"
USER_DN = "CN=Test User, O=Test Org, C=BR"


@pytest.fixture(scope="session")
def crypto():
    return RsaCrypto()


@pytest.fixture(scope="session")
def factory(crypto):
    return CertificateFactory(crypto)


@pytest.fixture(scope="session")
def root_keys(crypto):
    return crypto.generate_key_pair(2048)


@pytest.fixture(scope="session")
def intermediate_keys(crypto):
    return crypto.generate_key_pair(2048)


@pytest.fixture(scope="session")
def user_keys(crypto):
    return crypto.generate_key_pair(2048)


@pytest.fixture(scope="session")
def pki_ders(factory, root_keys, intermediate_keys, user_keys):
    """(root, intermediate, user) 三级证书的 DER。"""
    root = factory.create_root(root_keys, ROOT_DN)
    intermediate = factory.create_intermediate(
        intermediate_keys,
        root_keys,
        subject_dn=INTERMEDIATE_DN,
        issuer_dn=ROOT_DN,
        serial_number=2,
        crl_urls=["http://crl.example.com/intermediate.crl"],
        ocsp_urls=["http://ocsp.example.com"],
    )
    user = factory.create_user(
        user_keys,
        intermediate_keys,
        subject_dn=USER_DN,
        issuer_dn=INTERMEDIATE_DN,
        serial_number=3,
        crl_urls=["http://crl.example.com/user.crl"],
        ocsp_urls=["http://ocsp.example.com"],
    )
    return root, intermediate, user
