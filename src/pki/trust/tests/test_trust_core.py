"""
测试 trust/core.py 模块：目录解析、文件发现与证书池加载。
"""

import os
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.serialization import Encoding

from src.pki.der.core import der_to_pem
from src.pki.trust import core


@pytest.fixture
def cert_tree(tmp_path, pki_ders):
    """
    certs/
        bundle.pem      根 + 中间 CA 两个证书块
        corrupt.crt     无法解析
        empty.pem       没有证书块
        notes.txt       非证书扩展名
        sub/leaf.der    用户证书（DER）
    """
    root, intermediate, user = pki_ders
    certs = tmp_path / "certs"
    (certs / "sub").mkdir(parents=True)
    (certs / "bundle.pem").write_text(der_to_pem(root) + "\n" + der_to_pem(intermediate))
    (certs / "corrupt.crt").write_bytes(b"\x30\x03\x02\x01")
    (certs / "empty.pem").write_text("nothing here\n")
    (certs / "notes.txt").write_text(der_to_pem(root))
    (certs / "sub" / "leaf.der").write_bytes(user)
    return certs


def test_resolve_existing_directory_direct(tmp_path):
    assert core.resolve_existing_directory(str(tmp_path)) == tmp_path


def test_resolve_existing_directory_searches_ancestors(tmp_path, monkeypatch):
    """相对路径在工作目录不存在时，逐级向上查找"""
    (tmp_path / "certs").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    found = core.resolve_existing_directory("certs")
    assert found is not None
    assert found.resolve() == (tmp_path / "certs").resolve()


def test_resolve_existing_directory_respects_level_limit(tmp_path, monkeypatch):
    (tmp_path / "certs").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert core.resolve_existing_directory("certs", max_ancestor_levels=2) is None


def test_resolve_existing_directory_with_explicit_cwd(tmp_path):
    (tmp_path / "certs").mkdir()
    nested = tmp_path / "x"
    nested.mkdir()
    assert core.resolve_existing_directory("certs", cwd=nested) == tmp_path.resolve() / "certs"


def test_discover_certificate_files(cert_tree):
    names = [p.relative_to(cert_tree).as_posix() for p in core.discover_certificate_files(cert_tree)]
    assert names == ["bundle.pem", "corrupt.crt", "empty.pem", "sub/leaf.der"]


def test_discover_is_case_insensitive(tmp_path):
    (tmp_path / "ROOT.CER").write_bytes(b"")
    (tmp_path / "x.Pem").write_text("")
    names = [p.name for p in core.discover_certificate_files(tmp_path)]
    assert names == ["ROOT.CER", "x.Pem"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="需要符号链接支持")
def test_discover_skips_symlinks(tmp_path, pki_ders):
    target = tmp_path / "real.der"
    target.write_bytes(pki_ders[0])
    (tmp_path / "link.der").symlink_to(target)
    assert [p.name for p in core.discover_certificate_files(tmp_path)] == ["real.der"]


def test_parse_certificate_bytes_der_and_pem(pki_ders):
    root = pki_ders[0]
    assert core.parse_certificate_bytes(root, "root.der")[0].public_bytes(Encoding.DER) == root
    # 扩展名不是 .pem 时按内容中的标记识别
    parsed = core.parse_certificate_bytes(der_to_pem(root).encode("ascii"), "root.crt")
    assert parsed[0].public_bytes(Encoding.DER) == root


def test_parse_certificate_bytes_rejects_garbage():
    with pytest.raises(ValueError):
        core.parse_certificate_bytes(b"garbage", "x.cer")


def test_load_pool_from_directories(cert_tree, pki_ders):
    """可解析的文件全部进入证书池，其余记录为跳过"""
    root, intermediate, user = pki_ders
    result = core.load_pool_from_directories([str(cert_tree)], max_workers=4)

    assert [c.public_bytes(Encoding.DER) for c in result.certificates] == [root, intermediate, user]
    assert [(Path(f.path).name, f.status) for f in result.files] == [
        ("bundle.pem", "loaded"),
        ("corrupt.crt", "skipped"),
        ("empty.pem", "skipped"),
        ("leaf.der", "loaded"),
    ]
    assert result.files[0].certificate_count == 2
    assert [f.path for f in result.skipped] == [str(cert_tree / "corrupt.crt"), str(cert_tree / "empty.pem")]
    assert result.skipped[1].reason == "未找到证书块"
    assert result.missing_directories == []


def test_load_pool_skips_missing_directory(cert_tree, tmp_path):
    missing = str(tmp_path / "does-not-exist")
    result = core.load_pool_from_directories([missing, str(cert_tree)])
    assert result.missing_directories == [missing]
    assert len(result.certificates) == 3


def test_load_pool_is_deterministic(cert_tree):
    first = core.load_pool_from_directories([str(cert_tree)], max_workers=8)
    second = core.load_pool_from_directories([str(cert_tree)], max_workers=1)
    assert [f.path for f in first.files] == [f.path for f in second.files]
    assert [c.serial_number for c in first.certificates] == [c.serial_number for c in second.certificates]


def test_load_pool_empty_input():
    result = core.load_pool_from_directories([])
    assert result.certificates == []
    assert result.files == []


def test_load_cert_pool_from_directories(cert_tree):
    assert len(core.load_cert_pool_from_directories([str(cert_tree)])) == 3


def test_pool_from_ders_skips_invalid(pki_ders):
    pool = core.pool_from_ders([pki_ders[0], b"junk", pki_ders[2]])
    assert [c.serial_number for c in pool] == [1, 3]


def _with_bad_version(der: bytes) -> bytes:
    # TBS 中的 version [0] INTEGER 2 改为 3
    return der.replace(bytes.fromhex("a003020102"), bytes.fromhex("a003020103"), 1)


def test_load_pool_skips_certificate_with_invalid_version(tmp_path, pki_ders):
    """版本字段无效的证书只跳过该文件，不影响整批加载"""
    root, _, user = pki_ders
    (tmp_path / "good.der").write_bytes(root)
    (tmp_path / "bad.crt").write_bytes(_with_bad_version(user))
    (tmp_path / "bad.pem").write_text(der_to_pem(_with_bad_version(user)))

    result = core.load_pool_from_directories([str(tmp_path)])

    assert [c.public_bytes(Encoding.DER) for c in result.certificates] == [root]
    assert [Path(f.path).name for f in result.skipped] == ["bad.crt", "bad.pem"]


def test_pool_from_ders_skips_invalid_version(pki_ders):
    pool = core.pool_from_ders([_with_bad_version(pki_ders[2]), pki_ders[0]])
    assert [c.serial_number for c in pool] == [1]
