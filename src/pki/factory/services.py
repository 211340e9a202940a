"""
证书签发的业务逻辑层：生成主体密钥对、调用证书工厂并把结果转换为 PEM。
"""

from cryptography import x509

from src.pki.chain.core import dn_string
from src.pki.config import config
from src.pki.container import crypto, factory
from src.pki.crypto.core import key_pair_to_pem, load_key_pair_pem
from src.pki.der.core import der_to_pem
from .schemas import CertificateResponse, IntermediateRequest, RootRequest, UserRequest


def _response(certificate_der: bytes, private_key_pem: str) -> CertificateResponse:
    cert = x509.load_der_x509_certificate(certificate_der)
    return CertificateResponse(
        certificate=der_to_pem(certificate_der),
        private_key=private_key_pem,
        subject=dn_string(cert.subject),
        issuer=dn_string(cert.issuer),
        serial_number=cert.serial_number,
    )


def create_root_service(req: RootRequest) -> CertificateResponse:
    """
    生成密钥对并签发自签名根 CA。
    :param req: 根 CA 请求。
    :return: 证书与私钥。
    """
    key_pair = crypto.generate_key_pair(config.rsa_key_size)
    der = factory.create_root(key_pair, req.dn, validity_years=req.validity_years)
    return _response(der, key_pair_to_pem(key_pair))


def create_intermediate_service(req: IntermediateRequest) -> CertificateResponse:
    """
    生成密钥对并由请求中的签发者私钥签发中间 CA。
    :raises ValueError: 签发者私钥无效。
    """
    issuer_key_pair = load_key_pair_pem(req.issuer_private_key)
    key_pair = crypto.generate_key_pair(config.rsa_key_size)
    der = factory.create_intermediate(
        key_pair,
        issuer_key_pair,
        subject_dn=req.subject_dn,
        issuer_dn=req.issuer_dn,
        serial_number=req.serial_number if req.serial_number is not None else crypto.random_serial(),
        crl_urls=req.crl_urls,
        ocsp_urls=req.ocsp_urls,
        validity_years=req.validity_years,
    )
    return _response(der, key_pair_to_pem(key_pair))


def create_user_service(req: UserRequest) -> CertificateResponse:
    """
    生成密钥对并签发终端用户证书。
    :raises ValueError: 签发者私钥无效。
    """
    issuer_key_pair = load_key_pair_pem(req.issuer_private_key)
    key_pair = crypto.generate_key_pair(config.rsa_key_size)
    der = factory.create_user(
        key_pair,
        issuer_key_pair,
        subject_dn=req.subject_dn,
        issuer_dn=req.issuer_dn,
        serial_number=req.serial_number if req.serial_number is not None else crypto.random_serial(),
        crl_urls=req.crl_urls,
        ocsp_urls=req.ocsp_urls,
        validity_days=req.validity_days,
    )
    return _response(der, key_pair_to_pem(key_pair))
