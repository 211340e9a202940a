"""
证书工厂：根 CA、中间 CA 与终端用户证书的签发。
三种角色最终都汇入 CertificateFactory.create_certificate：
先由 DER 编码器构造 TBSCertificate，再用签发者私钥做 RSA/SHA-256 签名，最后组装外层证书。
"""

from datetime import datetime, timedelta, timezone
from typing import Sequence

from loguru import logger

from src.pki.crypto.core import KeyPair, RsaCrypto
from src.pki.der import core as der


class CertificateFactory:
    """
    基于注入的 RsaCrypto 签发 DER 编码证书。
    序列号唯一性由调用方负责，工厂不在多次调用之间保存任何状态。
    """

    def __init__(self, crypto: RsaCrypto, strict_dn: bool = False) -> None:
        self.crypto = crypto
        self.strict_dn = strict_dn

    def create_certificate(
        self,
        key_pair: KeyPair,
        issuer_key_pair: KeyPair,
        subject_dn: str,
        issuer_dn: str,
        serial_number: int,
        not_before: datetime,
        not_after: datetime,
        is_ca: bool = False,
        crl_urls: Sequence[str] | None = None,
        ocsp_urls: Sequence[str] | None = None,
    ) -> bytes:
        """
        底层证书签发。
        :param key_pair: 主体密钥对（证书中的公钥）。
        :param issuer_key_pair: 签发者密钥对（私钥用于签名，公钥用于 AKID）。
        :param subject_dn: 主体 DN，例如 "CN=User, O=Org"。
        :param issuer_dn: 签发者 DN，与 subject_dn 相同即为自签名。
        :param serial_number: 序列号。
        :param not_before: 生效时间。
        :param not_after: 失效时间，应晚于 not_before。
        :param is_ca: 是否为 CA 证书。
        :param crl_urls: CRL 分发点 URL 列表，为空则不写该扩展。
        :param ocsp_urls: OCSP URL 列表，为空则不写 AIA 扩展。
        :return: 证书的 DER 编码。
        """
        tbs = der.encode_tbs_certificate(
            subject_public_key=key_pair.public_key,
            issuer_public_key=issuer_key_pair.public_key,
            subject_dn=subject_dn,
            issuer_dn=issuer_dn,
            serial_number=serial_number,
            not_before=not_before,
            not_after=not_after,
            is_ca=is_ca,
            crl_urls=crl_urls,
            ocsp_urls=ocsp_urls,
            strict_dn=self.strict_dn,
        )
        signature = self.crypto.sign(tbs.dump(), issuer_key_pair.private_key)
        certificate = der.encode_certificate(tbs, signature).dump()
        logger.debug(
            f"已签发证书: subject='{subject_dn}', issuer='{issuer_dn}', "
            f"serial={serial_number}, ca={is_ca}"
        )
        return certificate

    def create_root(self, key_pair: KeyPair, dn: str, validity_years: int = 10) -> bytes:
        """自签名根 CA：序列号 1，签发者即主体，不含 AKID/CRL/AIA。"""
        now = datetime.now(timezone.utc)
        return self.create_certificate(
            key_pair=key_pair,
            issuer_key_pair=key_pair,
            subject_dn=dn,
            issuer_dn=dn,
            serial_number=1,
            not_before=now,
            not_after=now + timedelta(days=365 * validity_years),
            is_ca=True,
        )

    def create_intermediate(
        self,
        key_pair: KeyPair,
        issuer_key_pair: KeyPair,
        subject_dn: str,
        issuer_dn: str,
        serial_number: int,
        crl_urls: Sequence[str] | None = None,
        ocsp_urls: Sequence[str] | None = None,
        validity_years: int = 5,
    ) -> bytes:
        """由 issuer_key_pair 签发的中间 CA 证书。"""
        now = datetime.now(timezone.utc)
        return self.create_certificate(
            key_pair=key_pair,
            issuer_key_pair=issuer_key_pair,
            subject_dn=subject_dn,
            issuer_dn=issuer_dn,
            serial_number=serial_number,
            not_before=now,
            not_after=now + timedelta(days=365 * validity_years),
            is_ca=True,
            crl_urls=crl_urls,
            ocsp_urls=ocsp_urls,
        )

    def create_user(
        self,
        key_pair: KeyPair,
        issuer_key_pair: KeyPair,
        subject_dn: str,
        issuer_dn: str,
        serial_number: int,
        crl_urls: Sequence[str] | None = None,
        ocsp_urls: Sequence[str] | None = None,
        validity_days: int = 365,
    ) -> bytes:
        """由 issuer_key_pair 签发的终端实体证书。"""
        now = datetime.now(timezone.utc)
        return self.create_certificate(
            key_pair=key_pair,
            issuer_key_pair=issuer_key_pair,
            subject_dn=subject_dn,
            issuer_dn=issuer_dn,
            serial_number=serial_number,
            not_before=now,
            not_after=now + timedelta(days=validity_days),
            is_ca=False,
            crl_urls=crl_urls,
            ocsp_urls=ocsp_urls,
        )
