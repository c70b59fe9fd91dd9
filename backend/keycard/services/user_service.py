"""
用户服务 - 登录、客人注册、管理员创建账号
"""
from typing import Optional
import logging
from sqlalchemy import or_
from sqlalchemy.orm import Session
from keycard.models.ontology import User, UserRole
from keycard.models.schemas import GuestSignupRequest, UserCreate
from keycard.security.auth import get_password_hash, verify_password, create_access_token

logger = logging.getLogger(__name__)


def _full_name(first_name: str, last_name: str) -> str:
    return " ".join(part for part in (first_name.strip(), (last_name or "").strip()) if part)


class UserService:
    """用户服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_login(self, login: str) -> Optional[User]:
        """按用户名或邮箱查找"""
        value = (login or "").strip()
        return self.db.query(User).filter(
            or_(User.username == value, User.email == value.lower())
        ).first()

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        """认证登录；用户不存在或密码错误返回 None，账号停用抛出 ValueError"""
        user = self.get_user_by_login(username)
        if not user:
            return None

        if not user.is_active:
            raise ValueError("账号已停用")

        if not verify_password(password, user.password_hash):
            return None

        logger.info(f"User {user.username} logged in")
        return {
            "access_token": create_access_token(user.id, user.role),
            "token_type": "bearer",
            "user": user,
        }

    def _ensure_unique(self, username: str, email: str) -> None:
        if self.db.query(User).filter(User.username == username).first():
            raise ValueError(f"用户名 '{username}' 已存在")
        if self.db.query(User).filter(User.email == email).first():
            raise ValueError(f"邮箱 '{email}' 已被注册")

    def _create_user(self, username: str, email: str, password: str, first_name: str,
                     last_name: str, phone: Optional[str], role: UserRole) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name.strip(),
            last_name=(last_name or "").strip(),
            full_name=_full_name(first_name, last_name),
            phone=phone,
            role=role,
            is_active=True
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.username} created with role {role.value}")
        return user

    def guest_signup(self, data: GuestSignupRequest) -> User:
        """客人注册：邮箱即用户名"""
        self._ensure_unique(data.email, data.email)
        return self._create_user(
            data.email, data.email, data.password,
            data.first_name, data.last_name, data.phone, UserRole.GUEST
        )

    def admin_create_user(self, data: UserCreate) -> User:
        """管理员创建账号（员工或客人）"""
        username = data.username.strip()
        if not username:
            raise ValueError("用户名不能为空")
        self._ensure_unique(username, data.email)
        return self._create_user(
            username, data.email, data.password,
            data.first_name, data.last_name, data.phone, data.role
        )
