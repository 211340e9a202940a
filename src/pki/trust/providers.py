"""
信任锚提供者。
每个提供者只有一个能力：get_trusted_roots_der() 返回 DER 编码的受信任证书列表，
数据可以来自内置 PEM 表、BKS 密钥库、固定位置的证书文件或目录扫描。
"""

from pathlib import Path
from typing import List, Protocol, Sequence

from cryptography.hazmat.primitives.serialization import Encoding
from loguru import logger

from src.pki.der.core import pem_to_der
from .bks import read_bks_certificates
from .core import load_pool_from_directories, parse_certificate_file


class TrustedRootsProvider(Protocol):
    def get_trusted_roots_der(self) -> List[bytes]:
        ...


class PemTableProvider:
    """内置 PEM 常量表（例如随代码发布的信任库）。"""

    def __init__(self, pem_table: Sequence[str]) -> None:
        self.pem_table = tuple(pem_table)

    def get_trusted_roots_der(self) -> List[bytes]:
        return [pem_to_der(pem) for pem in self.pem_table]


class KeyStoreProvider:
    """
    固定位置的 BKS 密钥库。
    文件不存在时抛出 RuntimeError。
    """

    def __init__(self, path: str, password: str, strict_mac: bool = True) -> None:
        self.path = Path(path)
        self.password = password
        self.strict_mac = strict_mac

    def get_trusted_roots_der(self) -> List[bytes]:
        if not self.path.is_file():
            logger.error(f"密钥库未找到: {self.path}")
            raise RuntimeError(f"密钥库未找到: {self.path}")
        return read_bks_certificates(self.path.read_bytes(), self.password, strict_mac=self.strict_mac)


class CertificateFilesProvider:
    """
    固定位置的证书文件列表，每个文件都必须存在。
    """

    def __init__(self, paths: Sequence[str]) -> None:
        self.paths = [Path(p) for p in paths]

    def get_trusted_roots_der(self) -> List[bytes]:
        roots: List[bytes] = []
        for path in self.paths:
            if not path.is_file():
                logger.error(f"证书文件未找到: {path}")
                raise RuntimeError(f"证书文件未找到: {path}")
            roots.extend(c.public_bytes(Encoding.DER) for c in parse_certificate_file(path))
        return roots


class DirectoryProvider:
    """目录扫描，解析失败的文件被跳过。"""

    def __init__(self, directories: Sequence[str], max_ancestor_levels: int = 5, max_workers: int = 8) -> None:
        self.directories = list(directories)
        self.max_ancestor_levels = max_ancestor_levels
        self.max_workers = max_workers

    def get_trusted_roots_der(self) -> List[bytes]:
        result = load_pool_from_directories(self.directories, self.max_ancestor_levels, self.max_workers)
        return [c.public_bytes(Encoding.DER) for c in result.certificates]


class CompositeTrustedRootsProvider:
    """按顺序合并多个提供者的结果。"""

    def __init__(self, providers: Sequence[TrustedRootsProvider]) -> None:
        self.providers = list(providers)

    def get_trusted_roots_der(self) -> List[bytes]:
        out: List[bytes] = []
        for provider in self.providers:
            out.extend(provider.get_trusted_roots_der())
        return out
