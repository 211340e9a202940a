"""
证书签发的 FastAPI 路由定义。
"""

from fastapi import APIRouter, HTTPException
from . import services
from .schemas import (
    CertificateResponse,
    IntermediateRequest,
    RootRequest,
    UserRequest,
)

router = APIRouter(prefix="/factory", tags=["Certificate Factory"])


@router.post("/root", response_model=CertificateResponse)
async def create_root(req: RootRequest) -> CertificateResponse:
    """
    生成新的自签名根 CA。
    """
    try:
        return services.create_root_service(req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"内部服务器错误: {str(e)}")


@router.post("/intermediate", response_model=CertificateResponse)
async def create_intermediate(req: IntermediateRequest) -> CertificateResponse:
    """
    由上级 CA 签发中间 CA。
    """
    try:
        return services.create_intermediate_service(req)
    except ValueError as e:
        # 私钥或 DN 无效
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"证书签发失败: {str(e)}")


@router.post("/user", response_model=CertificateResponse)
async def create_user(req: UserRequest) -> CertificateResponse:
    """
    由上级 CA 签发终端用户证书。
    """
    try:
        return services.create_user_service(req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"证书签发失败: {str(e)}")
