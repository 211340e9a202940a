"""
证书签发接口的数据模型定义。
"""

from typing import List

from pydantic import BaseModel


class RootRequest(BaseModel):
    """
    签发自签名根 CA 的请求。
    """
    dn: str  # 例如 "CN=Root CA, O=Org, C=BR"
    validity_years: int = 10


class IssueRequest(BaseModel):
    """
    由上级 CA 签发证书的请求，主体密钥对由服务端生成。
    """
    subject_dn: str
    issuer_dn: str
    issuer_private_key: str  # PEM 格式的签发者私钥
    serial_number: int | None = None  # 为空时随机生成
    crl_urls: List[str] = []
    ocsp_urls: List[str] = []


class IntermediateRequest(IssueRequest):
    validity_years: int = 5


class UserRequest(IssueRequest):
    validity_days: int = 365


class CertificateResponse(BaseModel):
    """
    签发结果。
    """
    certificate: str  # PEM 格式证书
    private_key: str  # PEM 格式主体私钥
    subject: str
    issuer: str
    serial_number: int
