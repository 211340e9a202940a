"""
RSA 密钥与签名能力。
底层的密钥生成、哈希与签名全部交给 cryptography 库，本模块只负责把这些能力
收拢到一个可注入的 RsaCrypto 对象上，由组合根（container 模块）在进程内创建一次。
"""

import hashlib
import secrets
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PrivateFormat,
    NoEncryption,
)
from loguru import logger

PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyPair:
    """RSA 密钥对。公钥由私钥派生，不单独保存。"""

    private_key: rsa.RSAPrivateKey

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()


class RsaCrypto:
    """
    证书签发所需的密码学能力：生成密钥对、SHA-1 摘要、RSA/SHA-256 签名与验签。

    密钥生成与签名使用 OpenSSL 的进程级 CSPRNG（线程安全，由 OpenSSL 自行播种）；
    序列号使用 secrets.SystemRandom（基于 os.urandom，同样线程安全）。
    """

    def __init__(self) -> None:
        self._random = secrets.SystemRandom()

    def generate_key_pair(self, key_size: int = 2048) -> KeyPair:
        """
        生成新的 RSA 密钥对（公钥指数 65537）。
        :param key_size: 模数位数。
        :return: KeyPair
        """
        logger.debug(f"生成 RSA 密钥对: {key_size} 位")
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=key_size,
        )
        return KeyPair(private_key)

    def random_serial(self, bits: int = 63) -> int:
        """生成一个正的随机序列号。"""
        return self._random.getrandbits(bits) | 1

    @staticmethod
    def sha1(data: bytes) -> bytes:
        return hashlib.sha1(data).digest()

    @staticmethod
    def sign(data: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
        """
        使用 RSA PKCS#1 v1.5 + SHA-256 对数据签名。
        签名失败（例如传入非 RSA 私钥）直接向上抛出，不做任何回退。
        :param data: 待签名的字节串（通常为 TBSCertificate 的 DER 编码）。
        :param private_key: 签发者私钥。
        :return: 签名字节串。
        """
        return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    @staticmethod
    def verify(signature: bytes, data: bytes, public_key: rsa.RSAPublicKey) -> None:
        """验证 RSA/SHA-256 签名，失败时抛出 cryptography.exceptions.InvalidSignature。"""
        public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())


def key_pair_to_pem(key_pair: KeyPair) -> str:
    """将密钥对的私钥导出为未加密的 PKCS#8 PEM 文本。"""
    return key_pair.private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("utf-8")


def load_key_pair_pem(private_key_pem: str) -> KeyPair:
    """
    从 PEM 文本加载 RSA 私钥。
    :raises ValueError: 如果 PEM 无效或不是 RSA 私钥。
    """
    private_key = serialization.load_pem_private_key(
        private_key_pem.encode("utf-8"), password=None
    )
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError("仅支持 RSA 私钥")
    return KeyPair(private_key)
