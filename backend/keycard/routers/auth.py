"""
认证路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.schemas import (
    LoginRequest, LoginResponse, GuestSignupRequest, UserCreate, UserResponse
)
from keycard.models.ontology import User
from keycard.services.user_service import UserService
from keycard.security.auth import get_current_user, require_admin

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """用户登录（用户名或邮箱）"""
    service = UserService(db)
    try:
        result = service.authenticate(data.username, data.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户名或密码错误"
        )
    return LoginResponse(
        access_token=result["access_token"],
        token_type=result["token_type"],
        user=UserResponse.model_validate(result["user"])
    )


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def guest_signup(data: GuestSignupRequest, db: Session = Depends(get_db)):
    """客人注册"""
    try:
        return UserResponse.model_validate(UserService(db).guest_signup(data))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def admin_create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """管理员创建账号"""
    try:
        return UserResponse.model_validate(UserService(db).admin_create_user(data))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """获取当前用户信息"""
    return UserResponse.model_validate(current_user)
