"""
证书链构建的 FastAPI 路由定义。
"""

from fastapi import APIRouter, HTTPException
from . import services
from .schemas import ChainRequest, ChainResponse

router = APIRouter(prefix="/chain", tags=["Certificate Chain"])


@router.post("/resolve", response_model=ChainResponse)
async def resolve_chain(req: ChainRequest) -> ChainResponse:
    """
    从叶子证书出发，在信任池中构建完整证书链。
    """
    try:
        return services.resolve_chain_service(req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        # 信任库缺失等配置问题
        raise HTTPException(status_code=500, detail=f"信任池加载失败: {str(e)}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"内部服务器错误: {str(e)}")
