"""
证书链构建接口的数据模型定义。
"""

from typing import List

from pydantic import BaseModel


class ChainRequest(BaseModel):
    """
    证书链构建请求。
    """
    signer_certs_pem: List[str]  # 叶子在前的 PEM 证书列表
    pool_pem: List[str] = []  # 额外的候选证书（PEM，可包含多个证书块）
    max_depth: int | None = None


class ChainResponse(BaseModel):
    """
    证书链构建结果，下标 0 为叶子。
    """
    chain: List[str]
    subjects: List[str]
    complete: bool  # 是否以自签名根结束
