"""
信任池的 FastAPI 路由定义。
"""

from fastapi import APIRouter, HTTPException
from . import services
from .schemas import PoolSummaryResponse

router = APIRouter(prefix="/trust", tags=["Trust Pool"])


@router.get("/pool", response_model=PoolSummaryResponse)
async def pool_summary() -> PoolSummaryResponse:
    """
    返回当前配置下的信任池概况。
    """
    try:
        return services.pool_summary_service()
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=f"信任池加载失败: {str(e)}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"内部服务器错误: {str(e)}")
