"""
BouncyCastle KeyStore (BKS v2) 读取。

文件结构（大端序）：
    int32 版本(=2) | int32 盐长度 | 盐 | int32 迭代次数 | 条目... | 0 终止符 | 20 字节 HMAC-SHA1
完整性校验的 HMAC 密钥由 PKCS#12 KDF（RFC 7292 附录 B，SHA-1，ID=3）从口令派生。
只支持读取，不支持写回。
"""

import hashlib
import hmac
import io
import struct
from datetime import datetime, timezone
from typing import List

from loguru import logger

from .schemas import BksEncodedCertificate, BksEntry, BksEntryType, BksStore

STORE_VERSION = 2
HMAC_SIZE = 20
# 历史实现对派生 MAC 密钥长度参数的解读不同（按位 160 / 按字节 20），两种都接受
DERIVED_MAC_KEY_SIZE_PARAMS = (HMAC_SIZE * 8, HMAC_SIZE)

_PKCS12_MAC_ID = 3
_SHA1_BLOCK = 64


def _pkcs12_password_bytes(password: str) -> bytes:
    # UTF-16BE 加两字节 NUL 结尾；空口令也有结尾
    if not password:
        return b"\x00\x00"
    return password.encode("utf-16-be") + b"\x00\x00"


def _fill(data: bytes, block: int) -> bytes:
    if not data:
        return b""
    length = block * ((len(data) + block - 1) // block)
    return (data * (length // len(data) + 1))[:length]


def pkcs12_kdf(password: str, salt: bytes, iterations: int, key_len: int, key_id: int = _PKCS12_MAC_ID) -> bytes:
    """RFC 7292 附录 B.2 的 SHA-1 密钥派生。"""
    u, v = hashlib.sha1().digest_size, _SHA1_BLOCK
    d = bytes([key_id]) * v
    i = bytearray(_fill(salt, v) + _fill(_pkcs12_password_bytes(password), v))
    out = b""
    while len(out) < key_len:
        a = hashlib.sha1(d + bytes(i)).digest()
        for _ in range(iterations - 1):
            a = hashlib.sha1(a).digest()
        out += a
        b = int.from_bytes(_fill(a, v), "big")
        mask = (1 << (v * 8)) - 1
        for j in range(0, len(i), v):
            block = (int.from_bytes(i[j:j + v], "big") + b + 1) & mask
            i[j:j + v] = block.to_bytes(v, "big")
    return out[:key_len]


def calculate_mac(password: str, salt: bytes, iterations: int, body: bytes, key_size_param: int) -> bytes:
    key = pkcs12_kdf(password, salt, iterations, key_size_param // 8)
    return hmac.new(key, body, hashlib.sha1).digest()


def decode_modified_utf8(data: bytes) -> str:
    """Java DataInput 的 modified UTF-8：U+0000 为 C0 80，代理对分别编码。"""
    units: List[int] = []
    pos = 0
    while pos < len(data):
        b = data[pos]
        if b < 0x80:
            units.append(b)
            pos += 1
        elif b & 0xE0 == 0xC0:
            if pos + 1 >= len(data):
                raise ValueError("无效的 modified UTF-8（两字节序列被截断）")
            units.append(((b & 0x1F) << 6) | (data[pos + 1] & 0x3F))
            pos += 2
        elif b & 0xF0 == 0xE0:
            if pos + 2 >= len(data):
                raise ValueError("无效的 modified UTF-8（三字节序列被截断）")
            units.append(((b & 0x0F) << 12) | ((data[pos + 1] & 0x3F) << 6) | (data[pos + 2] & 0x3F))
            pos += 3
        else:
            raise ValueError(f"无效的 modified UTF-8 首字节: 0x{b:02x}")
    raw = "".join(chr(u) for u in units)
    return raw.encode("utf-16-be", "surrogatepass").decode("utf-16-be")


class _Reader:
    def __init__(self, data: bytes, end: int) -> None:
        self._buf = io.BytesIO(data[:end])

    @property
    def offset(self) -> int:
        return self._buf.tell()

    def read(self, n: int) -> bytes:
        if n < 0:
            raise ValueError("长度为负")
        chunk = self._buf.read(n)
        if len(chunk) != n:
            raise ValueError("读取 BKS 时遇到意外的文件结尾")
        return chunk

    def uint8(self) -> int:
        return self.read(1)[0]

    def int32(self) -> int:
        return struct.unpack(">i", self.read(4))[0]

    def int64(self) -> int:
        return struct.unpack(">q", self.read(8))[0]

    def utf(self) -> str:
        (length,) = struct.unpack(">H", self.read(2))
        return decode_modified_utf8(self.read(length))

    def certificate(self) -> BksEncodedCertificate:
        cert_type = self.utf()
        return BksEncodedCertificate(type=cert_type, encoded=self.read(self.int32()))


def decode_bks(data: bytes, password: str, strict_mac: bool = True) -> BksStore:
    """
    解析 BKS v2 密钥库。
    :param data: 密钥库文件内容。
    :param password: 完整性口令。
    :param strict_mac: HMAC 不匹配时是否报错。
    :raises ValueError: 文件结构无效。
    :raises RuntimeError: 完整性校验失败（strict_mac=True 时）。
    """
    header = _Reader(data, len(data))
    version = header.int32()
    if version != STORE_VERSION:
        raise ValueError(f"不支持的 BKS 版本: {version}（期望 {STORE_VERSION}）")
    salt_len = header.int32()
    if salt_len <= 0 or salt_len > 4096:
        raise ValueError(f"无效的盐长度: {salt_len}")
    salt = header.read(salt_len)
    iterations = header.int32()
    if iterations <= 0:
        raise ValueError(f"无效的迭代次数: {iterations}")

    body_start = header.offset
    body_end = len(data) - HMAC_SIZE
    if body_end < body_start:
        raise ValueError("文件过短，缺少 BKS 主体或 HMAC")
    body = data[body_start:body_end]
    stored_mac = data[body_end:]

    mac_ok = any(
        hmac.compare_digest(calculate_mac(password, salt, iterations, body, param), stored_mac)
        for param in DERIVED_MAC_KEY_SIZE_PARAMS
    )
    if not mac_ok:
        if strict_mac:
            raise RuntimeError("BKS 完整性校验失败（HMAC 不匹配）")
        logger.warning("BKS 完整性校验失败，按非严格模式继续解析")

    reader = _Reader(data, body_end)
    reader.read(body_start)
    entries: List[BksEntry] = []
    while reader.offset < body_end:
        entry_type = reader.uint8()
        if entry_type == 0:
            break
        alias = reader.utf()
        date = datetime.fromtimestamp(reader.int64() / 1000, tz=timezone.utc)
        chain_len = reader.int32()
        if chain_len < 0 or chain_len > 10000:
            raise ValueError(f"无效的证书链长度: {chain_len}")
        chain = [reader.certificate() for _ in range(chain_len)]

        entry = BksEntry(type=BksEntryType.CERTIFICATE, alias=alias, date=date, chain=chain)
        if entry_type == BksEntryType.CERTIFICATE:
            entry.certificate = reader.certificate()
        elif entry_type == BksEntryType.KEY:
            entry.type = BksEntryType.KEY
            entry.key_algorithm = reader.utf()
            entry.key_data = reader.read(reader.int32())
        elif entry_type == BksEntryType.SECRET:
            entry.type = BksEntryType.SECRET
            entry.secret_data = reader.read(reader.int32())
        elif entry_type == BksEntryType.SEALED:
            entry.type = BksEntryType.SEALED
            entry.sealed_data = reader.read(reader.int32())
        else:
            raise ValueError(f"未知的 BKS 条目类型: {entry_type}")
        entries.append(entry)

    return BksStore(version=version, salt=salt, iteration_count=iterations, entries=entries)


def read_bks_certificates(data: bytes, password: str, strict_mac: bool = True) -> List[bytes]:
    """读取密钥库中所有证书的 DER（受信任证书条目 + 各条目携带的证书链）。"""
    return decode_bks(data, password, strict_mac=strict_mac).all_certificates_der()
