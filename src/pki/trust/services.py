"""
信任池的业务逻辑层。
"""

from src.pki.chain.core import dn_string
from src.pki.container import load_configured_pool
from .schemas import PoolSummaryResponse


def pool_summary_service() -> PoolSummaryResponse:
    """
    加载配置的信任池并返回概况与被跳过文件的诊断信息。
    """
    result = load_configured_pool()
    return PoolSummaryResponse(
        certificate_count=len(result.certificates),
        subjects=[dn_string(c.subject) for c in result.certificates],
        skipped_files=result.skipped,
        missing_directories=result.missing_directories,
    )
