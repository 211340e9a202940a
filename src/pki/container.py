"""
组合根：在进程内创建一次共享的密码学能力与证书工厂，并按配置组装信任锚来源。
"""

from typing import List

from cryptography import x509
from loguru import logger

from src.pki.config import config
from src.pki.crypto.core import RsaCrypto
from src.pki.factory.core import CertificateFactory
from src.pki.trust.core import load_pool_from_directories, pool_from_ders
from src.pki.trust.providers import (
    CertificateFilesProvider,
    CompositeTrustedRootsProvider,
    KeyStoreProvider,
    TrustedRootsProvider,
)
from src.pki.trust.schemas import PoolLoadResult

crypto = RsaCrypto()
factory = CertificateFactory(crypto, strict_dn=config.strict_dn)


def configured_providers() -> CompositeTrustedRootsProvider:
    """按配置组装附加的信任锚提供者（固定证书文件、BKS 密钥库）。"""
    providers: List[TrustedRootsProvider] = []
    if config.trust_files:
        providers.append(CertificateFilesProvider(config.trust_files))
    if config.keystore_path:
        providers.append(KeyStoreProvider(config.keystore_path, config.keystore_password))
    return CompositeTrustedRootsProvider(providers)


def load_configured_pool() -> PoolLoadResult:
    """
    加载配置中的证书目录，并合并其他信任锚提供者的证书。
    :raises RuntimeError: 固定位置的信任库文件缺失。
    """
    result = load_pool_from_directories(
        config.trust_directories,
        max_ancestor_levels=config.max_ancestor_levels,
        max_workers=config.pool_workers,
    )
    extra: List[x509.Certificate] = pool_from_ders(configured_providers().get_trusted_roots_der())
    if extra:
        logger.info(f"合并 {len(extra)} 个来自信任锚提供者的证书")
        result.certificates.extend(extra)
    return result
