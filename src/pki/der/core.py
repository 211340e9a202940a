"""
X.509v3 证书结构的 DER 编码。
包括名称解析、算法标识、公钥信息、各类扩展以及 TBSCertificate / Certificate 的组装，
另外提供 DER 与 PEM 之间的转换。
"""

import base64
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from asn1crypto import core
from cryptography.hazmat.primitives.asymmetric import rsa
from loguru import logger

from src.pki.crypto.core import RsaCrypto
from src.pki.der import asn1

# 扩展 OID
OID_BASIC_CONSTRAINTS = "2.5.29.19"
OID_KEY_USAGE = "2.5.29.15"
OID_SUBJECT_KEY_IDENTIFIER = "2.5.29.14"
OID_AUTHORITY_KEY_IDENTIFIER = "2.5.29.35"
OID_CRL_DISTRIBUTION_POINTS = "2.5.29.31"
OID_AUTHORITY_INFO_ACCESS = "1.3.6.1.5.5.7.1.1"
OID_OCSP = "1.3.6.1.5.5.7.48.1"

# 算法 OID
OID_RSA_ENCRYPTION = "1.2.840.113549.1.1.1"
OID_SHA256_WITH_RSA = "1.2.840.113549.1.1.11"

# KeyUsage 位串（单字节，未用位数 0）
KEY_USAGE_CA = b"\x06"  # keyCertSign | cRLSign
KEY_USAGE_END_ENTITY = b"\xc0"  # digitalSignature | nonRepudiation

CERTIFICATE_VERSION_V3 = 2

# RFC 5280: 2050 年起的时间必须用 GeneralizedTime
UTC_TIME_MAX_YEAR = 2049

PEM_CERTIFICATE_RE = re.compile(
    r"-----BEGIN CERTIFICATE-----[\s\S]*?-----END CERTIFICATE-----"
)

# X.680 PrintableString 字符集
PRINTABLE_STRING_RE = re.compile(r"[A-Za-z0-9 '()+,\-./:=?]*")


class DnAttribute(Enum):
    """支持的 DN 属性类型及其 OID。"""

    CN = "2.5.4.3"
    O = "2.5.4.10"  # noqa: E741
    C = "2.5.4.6"


DnPairs = List[Tuple[DnAttribute, str]]


def parse_dn(dn: str, strict: bool = False) -> DnPairs:
    """
    解析形如 "CN=User, O=Org, C=BR" 的 DN 字符串，保持原有顺序。

    无法识别的属性类型、格式错误的片段或含 PrintableString 以外字符的值默认会被丢弃（记录 warning），
    因此可能得到空的 DN；strict=True 时改为抛出 ValueError。
    :param dn: 逗号分隔的 key=value 字符串。
    :param strict: 是否拒绝无法识别/格式错误的片段。
    :return: (属性类型, 值) 列表。
    """
    pairs: DnPairs = []
    for part in dn.split(","):
        kv = part.strip().split("=")
        if len(kv) != 2:
            _reject_dn_part(dn, part, "格式错误", strict)
            continue
        key = kv[0].strip().upper()
        try:
            attribute = DnAttribute[key]
        except KeyError:
            _reject_dn_part(dn, part, f"不支持的属性类型 {key}", strict)
            continue
        value = kv[1].strip()
        if not PRINTABLE_STRING_RE.fullmatch(value):
            _reject_dn_part(dn, part, "值包含 PrintableString 不允许的字符", strict)
            continue
        pairs.append((attribute, value))

    if not pairs:
        logger.warning(f"DN '{dn}' 解析结果为空名称")
    return pairs


def _reject_dn_part(dn: str, part: str, reason: str, strict: bool) -> None:
    if strict:
        raise ValueError(f"DN '{dn}' 中的片段 '{part.strip()}' 无效: {reason}")
    if part.strip():
        logger.warning(f"丢弃 DN '{dn}' 中的片段 '{part.strip()}': {reason}")


def encode_name(dn: str, strict: bool = False) -> asn1.Name:
    """每个可识别的属性编码为 SET { SEQUENCE { OID, PrintableString } }。"""
    rdns = []
    for attribute, value in parse_dn(dn, strict=strict):
        atv = asn1.AttributeTypeAndValue({"type": attribute.value, "value": value})
        rdns.append(asn1.RelativeDistinguishedName([atv]))
    return asn1.Name(rdns)


def encode_algorithm_identifier(oid: str) -> asn1.AlgorithmIdentifier:
    return asn1.AlgorithmIdentifier({"algorithm": oid, "parameters": core.Null()})


def encode_rsa_public_key(public_key: rsa.RSAPublicKey) -> asn1.RsaPublicKey:
    """SEQUENCE { INTEGER modulus, INTEGER exponent }"""
    numbers = public_key.public_numbers()
    return asn1.RsaPublicKey({"modulus": numbers.n, "public_exponent": numbers.e})


def encode_subject_public_key_info(public_key: rsa.RSAPublicKey) -> asn1.SubjectPublicKeyInfo:
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError("仅支持 RSA 公钥")
    return asn1.SubjectPublicKeyInfo(
        {
            "algorithm": encode_algorithm_identifier(OID_RSA_ENCRYPTION),
            "public_key": encode_rsa_public_key(public_key).dump(),
        }
    )


def encode_extension(oid: str, value: core.Asn1Value, critical: bool = False) -> asn1.Extension:
    """
    SEQUENCE { OID, [BOOLEAN TRUE], OCTET STRING(value 的 DER) }
    非关键扩展不写出 critical 字段。
    """
    return asn1.Extension(
        {"extn_id": oid, "critical": critical, "extn_value": value.dump()}
    )


def encode_basic_constraints(is_ca: bool) -> asn1.BasicConstraints:
    # 终端实体为空 SEQUENCE
    return asn1.BasicConstraints({"ca": is_ca})


def encode_key_usage(is_ca: bool) -> core.OctetBitString:
    return core.OctetBitString(KEY_USAGE_CA if is_ca else KEY_USAGE_END_ENTITY)


def key_identifier(public_key: rsa.RSAPublicKey) -> bytes:
    """
    密钥标识符：对 SEQUENCE { modulus, exponent } 的 DER 编码求 SHA-1（20 字节）。
    注意输入不是完整的 SubjectPublicKeyInfo。
    """
    return RsaCrypto.sha1(encode_rsa_public_key(public_key).dump())


def encode_subject_key_identifier(public_key: rsa.RSAPublicKey) -> core.OctetString:
    return core.OctetString(key_identifier(public_key))


def encode_authority_key_identifier(issuer_public_key: rsa.RSAPublicKey) -> asn1.AuthorityKeyIdentifier:
    return asn1.AuthorityKeyIdentifier({"key_identifier": key_identifier(issuer_public_key)})


def _uri(url: str) -> asn1.GeneralName:
    return asn1.GeneralName(name="uniform_resource_identifier", value=url)


def encode_crl_distribution_points(urls: Iterable[str]) -> asn1.CrlDistributionPoints:
    points = []
    for url in urls:
        dp_name = asn1.DistributionPointName(name="full_name", value=[_uri(url)])
        points.append(asn1.DistributionPoint({"distribution_point": dp_name}))
    return asn1.CrlDistributionPoints(points)


def encode_authority_info_access(urls: Iterable[str]) -> asn1.AuthorityInfoAccess:
    # 仅支持 OCSP 访问方法
    return asn1.AuthorityInfoAccess(
        [
            asn1.AccessDescription({"access_method": OID_OCSP, "access_location": _uri(url)})
            for url in urls
        ]
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_time(value: datetime) -> asn1.Time:
    """
    2049 年及以前用 UTCTime（YYMMDDHHMMSSZ），2050 年起用 GeneralizedTime（YYYYMMDDHHMMSSZ）。
    无时区的时间按 UTC 处理，微秒被舍弃。
    """
    value = _as_utc(value).replace(microsecond=0)
    if value.year <= UTC_TIME_MAX_YEAR:
        return asn1.Time(name="utc_time", value=value)
    return asn1.Time(name="general_time", value=value)


def encode_validity(not_before: datetime, not_after: datetime) -> asn1.Validity:
    return asn1.Validity(
        {
            "not_before": encode_time(not_before),
            "not_after": encode_time(not_after),
        }
    )


def encode_extensions(
    subject_public_key: rsa.RSAPublicKey,
    issuer_public_key: rsa.RSAPublicKey,
    self_signed: bool,
    is_ca: bool,
    crl_urls: Sequence[str] | None = None,
    ocsp_urls: Sequence[str] | None = None,
) -> asn1.Extensions:
    """
    按固定顺序组装扩展：BasicConstraints、KeyUsage、SKID、AKID（自签名时省略）、
    CRL 分发点与 AIA（URL 列表为空时省略）。
    """
    extensions = [
        encode_extension(OID_BASIC_CONSTRAINTS, encode_basic_constraints(is_ca), critical=True),
        encode_extension(OID_KEY_USAGE, encode_key_usage(is_ca), critical=True),
        encode_extension(OID_SUBJECT_KEY_IDENTIFIER, encode_subject_key_identifier(subject_public_key)),
    ]
    if not self_signed:
        extensions.append(
            encode_extension(
                OID_AUTHORITY_KEY_IDENTIFIER,
                encode_authority_key_identifier(issuer_public_key),
            )
        )
    if crl_urls:
        extensions.append(
            encode_extension(OID_CRL_DISTRIBUTION_POINTS, encode_crl_distribution_points(crl_urls))
        )
    if ocsp_urls:
        extensions.append(
            encode_extension(OID_AUTHORITY_INFO_ACCESS, encode_authority_info_access(ocsp_urls))
        )
    return asn1.Extensions(extensions)


def encode_tbs_certificate(
    subject_public_key: rsa.RSAPublicKey,
    issuer_public_key: rsa.RSAPublicKey,
    subject_dn: str,
    issuer_dn: str,
    serial_number: int,
    not_before: datetime,
    not_after: datetime,
    is_ca: bool,
    crl_urls: Sequence[str] | None = None,
    ocsp_urls: Sequence[str] | None = None,
    signature_algorithm: str = OID_SHA256_WITH_RSA,
    strict_dn: bool = False,
) -> asn1.TbsCertificate:
    """
    组装 TBSCertificate。字段顺序固定：
    version [0]、serial、signature、issuer、validity、subject、SPKI、extensions [3]。
    subject_dn 与 issuer_dn 字符串相同即视为自签名（不写 AKID）。
    """
    return asn1.TbsCertificate(
        {
            "version": CERTIFICATE_VERSION_V3,
            "serial_number": serial_number,
            "signature": encode_algorithm_identifier(signature_algorithm),
            "issuer": encode_name(issuer_dn, strict=strict_dn),
            "validity": encode_validity(not_before, not_after),
            "subject": encode_name(subject_dn, strict=strict_dn),
            "subject_public_key_info": encode_subject_public_key_info(subject_public_key),
            "extensions": encode_extensions(
                subject_public_key,
                issuer_public_key,
                self_signed=subject_dn == issuer_dn,
                is_ca=is_ca,
                crl_urls=crl_urls,
                ocsp_urls=ocsp_urls,
            ),
        }
    )


def encode_certificate(tbs: asn1.TbsCertificate, signature: bytes) -> asn1.Certificate:
    """
    组装外层 Certificate。外层签名算法直接取自 TBS 内已编码的算法标识，
    保证两处逐字节一致。
    """
    signature_algorithm = asn1.AlgorithmIdentifier.load(tbs["signature"].dump())
    return asn1.Certificate(
        {
            "tbs_certificate": tbs,
            "signature_algorithm": signature_algorithm,
            "signature_value": signature,
        }
    )


def der_to_pem(der: bytes, label: str = "CERTIFICATE") -> str:
    """DER 转 PEM，Base64 每行 64 列。"""
    b64 = base64.b64encode(der).decode("ascii")
    lines = [f"-----BEGIN {label}-----"]
    lines.extend(b64[i:i + 64] for i in range(0, len(b64), 64))
    lines.append(f"-----END {label}-----")
    return "\n".join(lines) + "\n"


def pem_to_der(pem: str) -> bytes:
    """
    PEM 转 DER：丢弃以 ----- 开头的行，其余行去空白后拼接再 Base64 解码。
    :raises ValueError: 如果 Base64 内容无效。
    """
    body = "".join(
        line.strip() for line in pem.splitlines() if not line.startswith("-----")
    )
    try:
        return base64.b64decode(body, validate=True)
    except ValueError as e:
        raise ValueError(f"无效的 PEM 内容: {e}") from e


def split_pem_certificates(text: str) -> List[str]:
    """提取文本中所有 BEGIN/END CERTIFICATE 块。"""
    return PEM_CERTIFICATE_RE.findall(text)
