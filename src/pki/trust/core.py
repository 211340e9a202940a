"""
从目录树加载候选证书池。
- 目录解析：路径不存在时逐级向上在祖先目录中查找；
- 文件发现：递归列出 .der/.cer/.crt/.pem 文件（不跟随符号链接）；
- 文件解析：PEM（可含多个证书块）或单个 DER 证书；
单个文件解析失败只会被记录为跳过，不会中断整批加载。
"""

import concurrent.futures
import os
from pathlib import Path
from typing import Iterable, List, Sequence

from cryptography import x509
from loguru import logger

from src.pki.der.core import split_pem_certificates
from .schemas import FileLoadResult, PoolLoadResult

CERTIFICATE_SUFFIXES = (".der", ".cer", ".crt", ".pem")
PEM_MARKER = "-----BEGIN CERTIFICATE-----"


def resolve_existing_directory(path: str, max_ancestor_levels: int = 5, cwd: Path | None = None) -> Path | None:
    """
    先按原样查找目录；不存在时从当前工作目录开始，逐级向上尝试 <祖先>/<path>。
    :param path: 目录路径（通常为相对路径）。
    :param max_ancestor_levels: 最多尝试的目录层数。
    :param cwd: 起始目录，默认为当前工作目录。
    :return: 找到的目录，找不到返回 None。
    """
    direct = Path(path)
    if direct.is_dir():
        return direct

    cursor = (cwd or Path.cwd()).resolve()
    for _ in range(max_ancestor_levels):
        rooted = cursor / path
        if rooted.is_dir():
            return rooted
        if cursor.parent == cursor:
            break
        cursor = cursor.parent
    return None


def discover_certificate_files(directory: Path) -> List[Path]:
    """递归列出目录下的证书文件（扩展名不区分大小写）。"""
    files: List[Path] = []
    for root, _dirs, names in os.walk(directory, followlinks=False):
        for name in names:
            candidate = Path(root) / name
            if candidate.is_symlink():
                continue
            if name.lower().endswith(CERTIFICATE_SUFFIXES):
                files.append(candidate)
    return sorted(files)


def parse_certificate_bytes(raw: bytes, name: str = "") -> List[x509.Certificate]:
    """
    按扩展名或内容中的 BEGIN CERTIFICATE 标记判断 PEM/DER 并解析。
    PEM 中的每个证书块独立解析。
    :raises ValueError: 内容无法解析为证书。
    :raises x509.InvalidVersion: 证书版本字段超出范围。
    """
    text = raw.decode("latin-1")
    looks_pem = name.lower().endswith(".pem") or PEM_MARKER in text
    if not looks_pem:
        return [x509.load_der_x509_certificate(raw)]
    return [
        x509.load_pem_x509_certificate(block.encode("ascii"))
        for block in split_pem_certificates(text)
    ]


def parse_certificate_file(path: Path) -> List[x509.Certificate]:
    return parse_certificate_bytes(path.read_bytes(), path.name)


def _load_file(path: Path) -> tuple[FileLoadResult, List[x509.Certificate]]:
    try:
        certificates = parse_certificate_file(path)
    except (OSError, ValueError, x509.InvalidVersion) as e:
        logger.warning(f"跳过无法解析的证书文件 {path}: {e}")
        return FileLoadResult(path=str(path), status="skipped", reason=str(e)), []
    if not certificates:
        return FileLoadResult(path=str(path), status="skipped", reason="未找到证书块"), []
    logger.debug(f"已加载 {len(certificates)} 个证书: {path}")
    return (
        FileLoadResult(path=str(path), status="loaded", certificate_count=len(certificates)),
        certificates,
    )


def load_pool_from_directories(
    directories: Iterable[str],
    max_ancestor_levels: int = 5,
    max_workers: int = 8,
) -> PoolLoadResult:
    """
    扫描多个目录并并行解析其中的证书文件。
    :param directories: 目录路径列表。
    :param max_ancestor_levels: 相对路径向上查找的层数。
    :param max_workers: 解析线程数。
    :return: 证书池及每个文件的加载诊断。
    """
    result = PoolLoadResult()
    files: List[Path] = []
    for directory in directories:
        resolved = resolve_existing_directory(directory, max_ancestor_levels=max_ancestor_levels)
        if resolved is None:
            logger.warning(f"证书目录不存在，已跳过: {directory}")
            result.missing_directories.append(directory)
            continue
        files.extend(discover_certificate_files(resolved))

    loaded = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
        futs = [ex.submit(_load_file, f) for f in files]
        for fut in concurrent.futures.as_completed(futs):
            loaded.append(fut.result())

    # 按路径排序，保证池顺序与线程调度无关
    for file_result, certificates in sorted(loaded, key=lambda item: item[0].path):
        result.files.append(file_result)
        result.certificates.extend(certificates)

    logger.info(
        f"证书池加载完成: {len(result.certificates)} 个证书，"
        f"{len(result.skipped)} 个文件被跳过"
    )
    return result


def load_cert_pool_from_directories(
    directories: Iterable[str],
    max_ancestor_levels: int = 5,
    max_workers: int = 8,
) -> List[x509.Certificate]:
    """只返回证书池本身。"""
    return load_pool_from_directories(directories, max_ancestor_levels, max_workers).certificates


def pool_from_ders(ders: Sequence[bytes]) -> List[x509.Certificate]:
    """将信任锚提供者返回的 DER 列表解析为证书，无法解析的条目被跳过。"""
    pool: List[x509.Certificate] = []
    for index, der in enumerate(ders):
        try:
            pool.append(x509.load_der_x509_certificate(der))
        except (ValueError, x509.InvalidVersion) as e:
            logger.warning(f"跳过无法解析的信任锚 #{index}: {e}")
    return pool
