"""
User Service - Business Logic for User Operations
"""
from typing import Optional, List, Tuple, Union
from sqlalchemy.orm import Session

from agency_crm.models import User, UserRole
from agency_crm.schemas import RegisterRequest, UserUpdate, UpdateDetailsRequest
from agency_crm.core.security import get_password_hash, verify_password
from agency_crm.services.query_utils import apply_sort, paginate, column_values


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_all(self, page: int = 1, limit: int = 10, sort: str = None) -> Tuple[List[User], int, dict]:
        query = apply_sort(self.db.query(User), User, sort)
        return paginate(query, page, limit)

    def create(self, user_data: RegisterRequest) -> User:
        """Create a user; the very first account becomes the admin"""
        if self.get_by_email(user_data.email):
            raise ValueError("Email already registered")

        role = UserRole.USER.value if self.db.query(User.id).first() else UserRole.ADMIN.value
        user = User(
            name=user_data.name,
            email=user_data.email,
            hashed_password=get_password_hash(user_data.password),
            role=role,
            is_active=True
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user_id: int, user_data: Union[UserUpdate, UpdateDetailsRequest]) -> Optional[User]:
        user = self.get_by_id(user_id)
        if not user:
            return None

        update_data = column_values(user_data, exclude_unset=True)
        new_email = update_data.get("email")
        if new_email and new_email != user.email and self.get_by_email(new_email):
            raise ValueError("Email already registered")

        for key, value in update_data.items():
            setattr(user, key, value)

        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not self.verify_password(user, current_password):
            raise ValueError("Current password is incorrect")
        user.hashed_password = get_password_hash(new_password)
        self.db.commit()
        self.db.refresh(user)
        return user

    def verify_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.hashed_password)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.get_by_email(email)
        if not user or not self.verify_password(user, password):
            return None
        return user

    def delete(self, user_id: int) -> bool:
        user = self.get_by_id(user_id)
        if not user:
            return False
        self.db.delete(user)
        self.db.commit()
        return True

