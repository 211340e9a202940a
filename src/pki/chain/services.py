"""
证书链构建的业务逻辑层。
"""

from typing import List

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from src.pki.config import config
from src.pki.container import load_configured_pool
from src.pki.der.core import split_pem_certificates
from . import core
from .schemas import ChainRequest, ChainResponse


def _parse_pool_pem(pool_pem: List[str]) -> List[x509.Certificate]:
    certificates = []
    for text in pool_pem:
        for block in split_pem_certificates(text):
            try:
                certificates.append(x509.load_pem_x509_certificate(block.encode("utf-8")))
            except (ValueError, x509.InvalidVersion) as e:
                raise ValueError(f"pool_pem 中包含无效证书: {e}") from e
    return certificates


def resolve_chain_service(req: ChainRequest) -> ChainResponse:
    """
    使用配置的信任池与请求中的额外证书构建证书链。
    :param req: 证书链请求。
    :return: PEM 格式的证书链。
    :raises ValueError: 叶子证书缺失或无效。
    :raises RuntimeError: 固定位置的信任库缺失。
    """
    if not req.signer_certs_pem:
        raise ValueError("signer_certs_pem 至少需要包含一个签名者证书")

    pool = _parse_pool_pem(req.pool_pem) + load_configured_pool().certificates
    chain = core.build_complete_chain(
        req.signer_certs_pem,
        pool,
        max_depth=req.max_depth if req.max_depth is not None else config.chain_max_depth,
    )
    return ChainResponse(
        chain=[c.public_bytes(Encoding.PEM).decode("utf-8") for c in chain],
        subjects=[core.dn_string(c.subject) for c in chain],
        complete=core.is_self_signed(chain[-1]),
    )
