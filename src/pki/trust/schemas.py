"""
信任池相关的数据模型定义。
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal

from cryptography import x509
from pydantic import BaseModel, ConfigDict


class FileLoadResult(BaseModel):
    """
    单个文件的加载结果。
    """
    path: str
    status: Literal["loaded", "skipped"]
    certificate_count: int = 0
    reason: str | None = None  # 跳过原因


class PoolLoadResult(BaseModel):
    """
    目录扫描结果：证书池 + 每个文件的诊断信息。
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    certificates: List[x509.Certificate] = []
    files: List[FileLoadResult] = []
    missing_directories: List[str] = []

    @property
    def skipped(self) -> List[FileLoadResult]:
        return [f for f in self.files if f.status == "skipped"]


class BksEntryType(int, Enum):
    CERTIFICATE = 1
    KEY = 2
    SECRET = 3
    SEALED = 4


class BksEncodedCertificate(BaseModel):
    type: str
    encoded: bytes


class BksEntry(BaseModel):
    """
    BKS 条目。根据 type 只有对应的负载字段有值。
    """
    type: BksEntryType
    alias: str
    date: datetime
    chain: List[BksEncodedCertificate] = []
    certificate: BksEncodedCertificate | None = None
    key_algorithm: str | None = None
    key_data: bytes | None = None
    secret_data: bytes | None = None
    sealed_data: bytes | None = None


class BksStore(BaseModel):
    version: int
    salt: bytes
    iteration_count: int
    entries: List[BksEntry] = []

    def all_certificates_der(self) -> List[bytes]:
        """返回所有证书的 DER（包括各条目的证书链与受信任证书条目）。"""
        out: List[bytes] = []
        for entry in self.entries:
            out.extend(c.encoded for c in entry.chain)
            if entry.type == BksEntryType.CERTIFICATE and entry.certificate is not None:
                out.append(entry.certificate.encoded)
        return out


class PoolSummaryResponse(BaseModel):
    """
    信任池加载概况。
    """
    certificate_count: int
    subjects: List[str]
    skipped_files: List[FileLoadResult]
    missing_directories: List[str]
