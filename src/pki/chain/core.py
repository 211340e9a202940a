"""
离线证书链构建。
从叶子证书出发，在候选证书池中按 DN 字符串匹配签发者，逐级向上直到自签名根、
找不到签发者、遇到环或达到最大深度为止。
查找过程不做签名验证，真正的信任判定交给下游验证器。
"""

from typing import List, Sequence

from cryptography import x509
from loguru import logger

DEFAULT_MAX_DEPTH = 10


def dn_string(name: x509.Name) -> str:
    """DN 的字符串形式（RFC 4514），比较时不做任何规范化。"""
    return name.rfc4514_string()


def is_self_signed(cert: x509.Certificate) -> bool:
    return dn_string(cert.issuer) == dn_string(cert.subject)


def find_issuer(
    cert: x509.Certificate, candidates: Sequence[x509.Certificate]
) -> x509.Certificate | None:
    """返回第一个主体 DN 等于 cert 签发者 DN 的候选证书。"""
    issuer = dn_string(cert.issuer)
    for candidate in candidates:
        if dn_string(candidate.subject) == issuer:
            return candidate
    return None


def parse_leaf_pem(pem: str) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(pem.encode("utf-8"))
    except (ValueError, x509.InvalidVersion) as e:
        raise ValueError(f"signer_certs_pem[0] 不是有效的 PEM 证书: {e}") from e


def build_complete_chain(
    signer_certs_pem: Sequence[str],
    cert_pool: Sequence[x509.Certificate],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[x509.Certificate]:
    """
    构建从叶子到根的证书链（下标 0 为叶子）。
    :param signer_certs_pem: 叶子在前的 PEM 证书列表，仅使用第一个。
    :param cert_pool: 候选签发者证书池。
    :param max_depth: 最多向上查找的层数。
    :return: 证书链；未以自签名根结束时可能不完整。
    :raises ValueError: signer_certs_pem 为空或叶子证书无法解析。
    """
    if not signer_certs_pem:
        raise ValueError("signer_certs_pem 至少需要包含一个签名者证书")

    leaf = parse_leaf_pem(signer_certs_pem[0])
    chain = [leaf]
    visited = {dn_string(leaf.subject)}

    current = leaf
    for _ in range(max_depth):
        issuer = find_issuer(current, cert_pool)
        if issuer is None:
            logger.debug(f"未找到签发者: {dn_string(current.issuer)}")
            break

        subject = dn_string(issuer.subject)
        # 空主体不参与环检测
        if subject and subject in visited:
            logger.warning(f"证书链出现环，停止于: {subject}")
            break

        chain.append(issuer)
        if subject:
            visited.add(subject)

        if is_self_signed(issuer):
            break
        current = issuer

    if not is_self_signed(chain[-1]):
        logger.warning(f"证书链未以自签名根结束，长度 {len(chain)}")
    logger.info(f"证书链构建完成: {[dn_string(c.subject) for c in chain]}")
    return chain
