"""
trust 测试夹具。
"""

import pytest

from src.pki.trust.tests.bks_builder import build_store, certificate_entry, key_entry


@pytest.fixture
def bks_store(pki_ders):
    """根 CA 作为受信任证书条目，用户私钥条目携带 [用户, 中间 CA] 证书链。"""
    root, intermediate, user = pki_ders
    return build_store(
        [
            certificate_entry("根证书", root),
            key_entry("user-key", "RSA", b"\x01\x02\x03", chain=[user, intermediate]),
        ],
        password="changeit",
    )
