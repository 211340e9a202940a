"""
证书签发用到的 ASN.1 结构定义（asn1crypto 模式类）。

这里刻意不直接复用 asn1crypto.x509 中的同名结构：
- 名称属性值固定为 PrintableString；
- KeyUsage 以单字节 BIT STRING（未用位数为 0）原样写出；
- URI 类型的 GeneralName 使用原始 IA5String，不做 IRI 规范化。
这样输出的 DER 与已部署证书逐字节一致。
"""

from asn1crypto import core


class AlgorithmIdentifier(core.Sequence):
    _fields = [
        ("algorithm", core.ObjectIdentifier),
        ("parameters", core.Null),
    ]


class AttributeTypeAndValue(core.Sequence):
    _fields = [
        ("type", core.ObjectIdentifier),
        ("value", core.PrintableString),
    ]


class RelativeDistinguishedName(core.SetOf):
    _child_spec = AttributeTypeAndValue


class Name(core.SequenceOf):
    _child_spec = RelativeDistinguishedName


class RsaPublicKey(core.Sequence):
    _fields = [
        ("modulus", core.Integer),
        ("public_exponent", core.Integer),
    ]


class SubjectPublicKeyInfo(core.Sequence):
    _fields = [
        ("algorithm", AlgorithmIdentifier),
        ("public_key", core.OctetBitString),
    ]


class Time(core.Choice):
    _alternatives = [
        ("utc_time", core.UTCTime),
        ("general_time", core.GeneralizedTime),
    ]


class Validity(core.Sequence):
    _fields = [
        ("not_before", Time),
        ("not_after", Time),
    ]


class Extension(core.Sequence):
    # 等于默认值 False 时不写出
    _fields = [
        ("extn_id", core.ObjectIdentifier),
        ("critical", core.Boolean, {"default": False}),
        ("extn_value", core.OctetString),
    ]


class Extensions(core.SequenceOf):
    _child_spec = Extension


class BasicConstraints(core.Sequence):
    _fields = [
        ("ca", core.Boolean, {"default": False}),
    ]


class AuthorityKeyIdentifier(core.Sequence):
    _fields = [
        ("key_identifier", core.OctetString, {"implicit": 0, "optional": True}),
    ]


class GeneralName(core.Choice):
    _alternatives = [
        ("uniform_resource_identifier", core.IA5String, {"implicit": 6}),
    ]


class GeneralNames(core.SequenceOf):
    _child_spec = GeneralName


class DistributionPointName(core.Choice):
    _alternatives = [
        ("full_name", GeneralNames, {"implicit": 0}),
    ]


class DistributionPoint(core.Sequence):
    _fields = [
        ("distribution_point", DistributionPointName, {"explicit": 0, "optional": True}),
    ]


class CrlDistributionPoints(core.SequenceOf):
    _child_spec = DistributionPoint


class AccessDescription(core.Sequence):
    _fields = [
        ("access_method", core.ObjectIdentifier),
        ("access_location", GeneralName),
    ]


class AuthorityInfoAccess(core.SequenceOf):
    _child_spec = AccessDescription


class TbsCertificate(core.Sequence):
    _fields = [
        ("version", core.Integer, {"explicit": 0}),
        ("serial_number", core.Integer),
        ("signature", AlgorithmIdentifier),
        ("issuer", Name),
        ("validity", Validity),
        ("subject", Name),
        ("subject_public_key_info", SubjectPublicKeyInfo),
        ("extensions", Extensions, {"explicit": 3}),
    ]


class Certificate(core.Sequence):
    _fields = [
        ("tbs_certificate", TbsCertificate),
        ("signature_algorithm", AlgorithmIdentifier),
        ("signature_value", core.OctetBitString),
    ]
